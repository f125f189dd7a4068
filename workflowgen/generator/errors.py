"""Exceptions raised while generating workflow documents."""


class GenerationError(Exception):
    """Base error for a failed generation step."""
    pass


class SnippetParseError(GenerationError):
    """Rendered snippet text is not a JSON object."""

    def __init__(self, snippet_file: str, reason: str):
        self.snippet_file = snippet_file
        self.reason = reason
        super().__init__(f"Unable to parse snippet '{snippet_file}': {reason}")


class SnippetRenderError(GenerationError):
    """The template renderer failed on a snippet."""

    def __init__(self, snippet_file: str, reason: str):
        self.snippet_file = snippet_file
        self.reason = reason
        super().__init__(f"Unable to render snippet '{snippet_file}': {reason}")


class DocumentError(GenerationError):
    """Invalid mutation of the output document."""
    pass


class DuplicateKeyError(DocumentError):
    """A key was appended to an object that already holds it."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Property with the same name already exists: '{key}'")


class PathSyntaxError(DocumentError):
    """A path expression could not be parsed."""

    def __init__(self, path: str, position: int, reason: str):
        self.path = path
        self.position = position
        self.reason = reason
        super().__init__(f"Invalid path '{path}' at position {position}: {reason}")


class SnippetFileError(GenerationError):
    """A snippet file could not be read, or its debug copy written."""

    def __init__(self, snippet_file: str, reason: str):
        self.snippet_file = snippet_file
        self.reason = reason
        super().__init__(f"Unable to access snippet '{snippet_file}': {reason}")


class OutputWriteError(GenerationError):
    """A generated document could not be written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to write '{path}': {reason}")
