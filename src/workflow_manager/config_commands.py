"""Configuration commands for the workflow-manager CLI."""

from cyclopts import App

from workflow_manager.config import get_config, load_settings

config_app = App(name="config", help="Manage workflow-manager configuration")

KNOWN_KEYS = {
    "store.path": "YAML file holding users, tasks and requests",
    "scheduler.interval": "Seconds between overdue sweeps",
    "rules.invite_during_transfer": "Allow invitations while a transfer is pending",
    "rules.transfer_during_invite": "Allow transfers while an invitation is pending",
}


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration setting.

    Args:
        key: Configuration key, e.g. scheduler.interval
        value: Configuration value
        global_: If True, set in global config. If False, set in local config.
    """
    if key not in KNOWN_KEYS:
        print(f"warning: {key} is not a recognised key")
    config = get_config(use_global=global_)
    config.set(key, value)
    print(f"Set {key} = {value} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Unset a configuration setting.

    Args:
        key: Configuration key
        global_: If True, unset from global config. If False, unset from local config.
    """
    get_config(use_global=global_).unset(key)
    print(f"Unset {key} ({_scope(global_)})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Get the value of a configuration setting."""
    value = get_config(use_global=global_).get(key)
    print(f"{key} is not set" if value is None else f"{key} = {value}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """List explicit settings, followed by the recognised keys."""
    settings = get_config(use_global=global_).list()
    if settings:
        for key, value in settings.items():
            print(f"{key} = {value}")
    else:
        print(f"No {_scope(global_)} configuration settings")

    print("\nRecognised keys:")
    for key, help_text in KNOWN_KEYS.items():
        print(f"  {key:<32} {help_text}")


@config_app.command
def show() -> None:
    """Show the settings in effect after defaults are applied."""
    settings = load_settings(get_config())
    print(f"store.path = {settings.store_path}")
    print(f"scheduler.interval = {settings.sweep_interval}")
    print(f"rules.invite_during_transfer = {settings.rules.invite_during_transfer}")
    print(f"rules.transfer_during_invite = {settings.rules.transfer_during_invite}")
