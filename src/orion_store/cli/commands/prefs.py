"""Prefs command: show or change preference flags."""

from argparse import Namespace

from orion_store.core.preferences import Preferences

from .base import BaseCommandHandler

# CLI option dest -> Preferences attribute
_FLAGS = {
    "auto_update": "auto_update_enabled",
    "wifi_only": "wifi_only",
    "delete_apk": "delete_apk",
    "remote_json": "use_remote_json",
}


class PrefsHandler(BaseCommandHandler):
    """Handler for the prefs command."""

    async def execute(self, args: Namespace) -> int:
        preferences = Preferences(self.store)
        for option, attribute in _FLAGS.items():
            value = getattr(args, option, None)
            if value is not None:
                setattr(preferences, attribute, value == "on")

        for option, attribute in _FLAGS.items():
            state = "on" if getattr(preferences, attribute) else "off"
            print(f"  {option.replace('_', '-')}: {state}")
        print(f"  theme: {preferences.theme}")
        return 0
