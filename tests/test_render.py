"""Tests for the two pass renderer and the template backtrace helpers."""

import pytest

from molesite.article import Article
from molesite.content import Config
from molesite.errors import TemplateRenderError
from molesite.render import (
    annotate_backtrace,
    compose_layout,
    convert_markdown,
    is_include_failure,
    markdown_to_html,
    render_article,
    resolve_directives,
)
from molesite.templates import TemplateStore, make_environment

ARTICLE = "---\r\nlayout: page\r\ntitle:cats and dogs\n---\r\ncat"


def make_env(templates):
    store = TemplateStore()
    for index, (name, source) in enumerate(templates.items()):
        store.add(name, source, layout=index == 0)
    return make_environment(store)


def render(text, templates, global_context=None, log=None):
    env = make_env(templates)
    article = Article.from_text(text, "post.md")
    kwargs = {"log": log} if log is not None else {}
    return render_article(article, global_context or {}, env, **kwargs)


def test_default_layout_wraps_article(sink):
    assert render(ARTICLE, {"default": "cats"}, log=sink) == "cats"


def test_globals_are_visible():
    assert render(ARTICLE, {"default": "{{global.test}}"}, {"test": 1}) == "1"


def test_page_content_is_html():
    templates = {"default": "<h1>{{page.config.title}}</h1>{{page.content}}"}
    assert render(ARTICLE, templates) == "<h1>cats and dogs</h1><p>cat</p>\n"


def test_inline_html_survives_markdown():
    text = "---\nlayout: page\ntitle:cats and dogs\n---\ncat<span>hello world</span>"
    templates = {"default": "<h1>{{page.config.title}}</h1>{{page.content}}"}
    assert render(text, templates) == "<h1>cats and dogs</h1><p>cat<span>hello world</span></p>\n"


def test_chained_includes():
    templates = {
        "default": "{% include 'header' %}{% include layout %}",
        "header": "I am a header",
        "page2": "1",
        "page3": "2",
        "page": "{{page.content}}",
        "page4": "3",
    }
    assert render(ARTICLE, templates) == "I am a header<p>cat</p>\n"


def test_body_directives_see_page():
    text = "---\nlayout: page\ntitle:mole\n---\ncat {{page.config.title}}"
    templates = {
        "default": "<h1>{{page.config.title}}</h1>{% include layout %}",
        "page": "{{page.content}}",
    }
    assert render(text, templates) == "<h1>mole</h1><p>cat mole</p>\n"


def test_directives_resolve_before_markdown():
    text = "---\nlayout: page\ntitle:t\n---\n{{ '*' }}{{ page.config.title }}{{ '*' }}"
    assert render(text, {"default": "{{ page.content }}"}) == "<p><em>t</em></p>\n"


def test_each_phase_replaces_the_article():
    env = make_env({"default": "{{ page.content }}"})
    article = Article.from_text("---\nlayout: page\ntitle:t\n---\n{{ page.config.title }} *x*")
    resolved = resolve_directives(article, {}, env)
    assert resolved.template == "t *x*"
    assert resolved.context["content"] == "t *x*"
    converted = convert_markdown(resolved, {}, env)
    assert converted.template == "<p>t <em>x</em></p>\n"
    assert converted.context["content"] == "<p>t <em>x</em></p>\n"
    assert article.template == "{{ page.config.title }} *x*"
    assert resolved.template == "t *x*"


def test_layout_used_when_base_layout_is_empty(sink):
    env = make_env({"page": "[{{ page.content }}]"})
    article = Article.from_parts(Config(title="t", layout="page", base_layout=""), "<p>cat</p>")
    assert compose_layout(article, {}, env, log=sink) == "[<p>cat</p>]"
    assert any("no base layout found" in message for message in sink.messages("warning"))


def test_content_only_without_any_layout(sink):
    env = make_env({"default": "unused"})
    article = Article.from_parts(Config(title="t", base_layout=""), "<p>{{ page.config.title }}</p>")
    assert compose_layout(article, {}, env, log=sink) == "<p>t</p>"
    assert any("without any layout" in message for message in sink.messages("warning"))


def test_base_layout_wins_over_layout(sink):
    env = make_env({"outer": "outer {{ page.content }}", "page": "inner"})
    article = Article.from_parts(Config(title="t", layout="page", base_layout="outer"), "x")
    assert compose_layout(article, {}, env, log=sink) == "outer x"
    assert any("using base layout 'outer'" in message for message in sink.messages("warning"))


def test_warns_when_layout_lacks_content_placeholder(sink):
    render(ARTICLE, {"default": "cats"}, log=sink)
    assert any("may be missing" in message for message in sink.messages("warning"))


@pytest.mark.parametrize("layout", ["{{page.content}}", "<main>{{ page.content }}</main>"])
def test_no_placeholder_warning_when_content_is_used(sink, layout):
    render(ARTICLE, {"default": layout}, log=sink)
    assert not any("may be missing" in message for message in sink.messages("warning"))


def test_missing_include_in_body_is_not_an_include_failure():
    text = "---\nlayout: page\ntitle:t\n---\n{% include 'nope' %}"
    with pytest.raises(TemplateRenderError) as info:
        render(text, {"default": "{{ page.content }}"})
    assert info.value.message.startswith("TemplateNotFound: nope")
    assert not is_include_failure(info.value.message)


def test_missing_include_inside_layout():
    with pytest.raises(TemplateRenderError) as info:
        render(ARTICLE, {"default": "{% include 'nope' %}"})
    message = info.value.message
    assert message.startswith("TemplateNotFound: nope")
    assert "from: {% include 'default' %}" in message
    assert '    "default"' in message
    assert is_include_failure(message)


def test_missing_base_layout_is_an_include_failure():
    with pytest.raises(TemplateRenderError) as info:
        render(ARTICLE, {"page": "{{ page.content }}"})
    assert info.value.message.startswith("TemplateNotFound: default")
    assert is_include_failure(info.value.message)


def test_syntax_error_in_nested_include():
    templates = {"default": "{% include 'header' %}", "header": "{{ oops"}
    with pytest.raises(TemplateRenderError) as info:
        render(ARTICLE, templates)
    message = info.value.message
    assert message.startswith("TemplateSyntaxError")
    assert "from: {% include 'header' %}" in message
    assert message.index("'default'") < message.index("'header'")


def test_markdown_to_html():
    assert markdown_to_html("cat") == "<p>cat</p>\n"
    assert "<table>" in markdown_to_html("| a | b |\n|---|---|\n| 1 | 2 |")
    assert "<code" in markdown_to_html("```\nprint(1)\n```")


def test_markdown_highlighting():
    html = markdown_to_html("```python\nprint(1)\n```", highlight=True)
    assert 'class="codehilite"' in html


def test_annotate_backtrace_adds_paths():
    message = "\n".join(
        [
            "Template TemplateNotFound: nope",
            "from: {% include 'default' %}",
            '    "default" line 1',
            "from: {% include 'header' %}",
            '    "header" line 3',
            "",
        ]
    )
    annotated = annotate_backtrace(message, {"default": "/site/_layouts/default.html"})
    assert annotated.split("\n") == [
        "Template TemplateNotFound: nope",
        "from: {% include 'default' %}",
        '    "default" line 1',
        "    default = /site/_layouts/default.html",
        "from: {% include 'header' %}",
        '    "header" line 3',
        "",
    ]


def test_annotate_backtrace_ignores_quotes_outside_includes():
    message = '    "default" line 1\nplain'
    assert annotate_backtrace(message, {"default": "x.html"}) == message


def test_annotate_backtrace_never_fails():
    message = 'from: {% include \'a\' %}\n    "unterminated\n    "b" line 2'
    assert annotate_backtrace(message, {}) == message
