"""Exception types for setup-os."""


class SetupError(Exception):
    """Base class for errors that abort a setup-os command."""


class ConfigError(SetupError):
    """Invalid settings file or settings value."""


class ProfileError(SetupError):
    """Unknown or unreadable profile."""


class ManifestError(SetupError):
    """Missing or malformed dotfiles manifest."""


class SymlinkError(SetupError):
    """A manifest entry could not be linked."""


class CommandError(SetupError):
    """An external command failed."""

    def __init__(self, argv, returncode: int, output: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.output = output
        message = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if output:
            message = f"{message}: {output}"
        super().__init__(message)
