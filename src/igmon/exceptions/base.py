from __future__ import annotations


class IgmonError(Exception):
    """Base exception class for all igmon-specific errors.

    This is the root of the igmon exception hierarchy. Catching it at the CLI
    boundary handles every expected failure while letting system exceptions
    propagate naturally.

    Attributes:
        message: Human-readable error message describing what went wrong.

    Example:
        ```python
        try:
            config = load_config(path)
        except IgmonError as e:
            click.echo(format_error(e.message), err=True)
            sys.exit(1)
        ```
    """

    def __init__(self, message: str) -> None:
        """Initialize the IgmonError.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)
