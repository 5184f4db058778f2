"""CLI argument builder modules.

The top-level :mod:`fleet_scan_cli` is intentionally kept thin. Groups of flags
are registered via small "arg builder" functions housed here.

Each module exposes a single public function:

- :func:`cli.args.base.add_base_args`
- :func:`cli.args.fleet.add_fleet_args`
- :func:`cli.args.settings_overrides.add_settings_override_args`

This keeps per-mode flags next to each other and :func:`fleet_scan_cli.parse_args`
small.
"""

from __future__ import annotations

__all__ = [
    "base",
    "fleet",
    "settings_overrides",
]
