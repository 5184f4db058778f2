from __future__ import annotations

from typing import Dict, Optional


def choose_from_menu(title: str, options: Dict[str, str]) -> str:
    """Show a 1..N menu of keys in 'options' and return the chosen key."""
    keys = list(options.keys())
    print("\n" + title)
    for idx, key in enumerate(keys, start=1):
        print(f"[{idx}] {options[key]} ({key})")

    while True:
        choice = input(f"Enter number (1-{len(keys)}) or Z to exit: ").strip()
        if not choice:
            print("Please enter a number or Z to exit.")
            continue
        if choice.upper() == "Z":
            print("Exiting (Z selected).")
            raise SystemExit(0)
        if choice.isdigit():
            n = int(choice)
            if 1 <= n <= len(keys):
                return keys[n - 1]
        print(f"Invalid choice. Please enter 1-{len(keys)} or Z.")


def prompt_text(prompt: str, default: Optional[str] = None) -> str:
    """Prompt for free-text input with an optional default."""
    if default is not None:
        raw = input(f"{prompt} [{default}]: ").strip()
        return raw or str(default)
    return input(f"{prompt}: ").strip()
