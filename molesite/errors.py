from __future__ import annotations


class MoleError(Exception):
    label = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class ParseError(MoleError):
    label = "Parse error"


class InvalidKey(ParseError):
    label = "Invalid key"


class EmptyValue(ParseError):
    label = "Empty value"


class InvalidValue(ParseError):
    label = "Invalid value"


class InvalidConfig(ParseError):
    label = "Invalid configuration"


class RenderError(MoleError):
    label = "Render error"


class TemplateRenderError(RenderError):
    label = "Template"


class OutputError(RenderError):
    label = "Output error"


class BuildError(MoleError):
    label = "Build error"


class MissingLayoutsError(BuildError):
    label = "Build error"


class ConfigError(MoleError):
    label = "Config error"
