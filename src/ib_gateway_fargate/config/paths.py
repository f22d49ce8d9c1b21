"""Shared filesystem paths for user configuration."""

from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "ib-gateway-fargate"
ENV_FILENAME = ".env"


def config_dir() -> Path:
    """Return the user configuration directory.

    Returns:
        The user configuration directory path.
    """
    return Path(user_config_dir(APP_NAME))


def user_env_path() -> Path:
    """Return the per-user env file path.

    Returns:
        The user env file path.
    """
    return config_dir() / ENV_FILENAME


def env_path(explicit: Path | None = None) -> Path:
    """Resolve the settings file to load.

    An explicit path always wins. Otherwise `.env` in the working directory
    is used when present, falling back to the per-user file.

    Args:
        explicit: Path passed on the command line, if any.

    Returns:
        The env file path. It may not exist.
    """
    if explicit is not None:
        return explicit

    local = Path.cwd() / ENV_FILENAME
    if local.exists():
        return local
    return user_env_path()
