"""Config commands -- view and modify the client settings.

Provides the ``sessionbridge config`` sub-command group. Values are stored
in the config file under the sessionbridge config directory and are read
once whenever a background context starts; environment variables take
precedence over them (see :func:`sessionbridge.config.resolve_settings`).
"""

from __future__ import annotations

import typer

from sessionbridge.exit_codes import EXIT_INVALID_USAGE
from sessionbridge.output import error, info, print_document, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored settings.

    Example::

        sessionbridge config show
        sessionbridge --json config show
    """
    from sessionbridge.config import config_file_path, load_config_file

    info(f"Config file: {config_file_path()}")
    print_document(load_config_file())


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name, e.g. 'client_id'."),
    value: str = typer.Argument(help="Value to store."),
) -> None:
    """Store a setting.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the value invalid.

    Example::

        sessionbridge config set redirect_uri https://app.example.com/callback
        sessionbridge config set timeout 10
    """
    from pydantic import TypeAdapter, ValidationError

    from sessionbridge.config import load_config_file, save_config_file
    from sessionbridge.exceptions import ConfigError
    from sessionbridge.models import Settings

    field = Settings.model_fields.get(key)
    if field is None:
        error(f"Unknown config key: {key}")
        info(f"Known keys: {', '.join(sorted(Settings.model_fields))}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        data = load_config_file()
        coerced = TypeAdapter(field.annotation).validate_python(value)
        data[key] = coerced
        save_config_file(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Set {key} = {coerced}")


@config_app.command("unset")
def config_unset(
    key: str = typer.Argument(help="Setting name to remove."),
) -> None:
    """Remove a stored setting so the default or environment applies."""
    from sessionbridge.config import load_config_file, save_config_file

    data = load_config_file()
    if data.pop(key, None) is None:
        info(f"{key} is not set.")
        return
    save_config_file(data)
    success(f"Unset {key}")


@config_app.command("path")
def config_path() -> None:
    """Print the config file location."""
    from sessionbridge.config import config_file_path
    from sessionbridge.output import get_output

    get_output().print_data(str(config_file_path()))


@config_app.command("metadata")
def config_metadata() -> None:
    """Print the OAuth client metadata document for the resolved settings.

    Publish this JSON at the ``client_id`` URL.
    """
    from sessionbridge.config import resolve_settings
    from sessionbridge.exceptions import ConfigError

    try:
        settings = resolve_settings()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    print_document(settings.client_metadata().model_dump(mode="json", exclude_none=True))
