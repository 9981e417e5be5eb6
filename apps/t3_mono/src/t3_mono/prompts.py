from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from rich.console import Console
from rich.prompt import Confirm, Prompt

from t3_mono.catalog import Catalog


@dataclass(frozen=True)
class Selection:
    auth_provider: str
    extensions: tuple[str, ...]


def prompt_selection(
    catalog: Catalog,
    *,
    auth_provider: str,
    extensions: Sequence[str] = (),
    console: Console | None = None,
) -> Selection:
    """Ask for the auth provider and the extension set; flag values are the defaults.

    Extensions that need a different auth provider than the chosen one are not offered.
    """

    console = console or Console()
    console.print("\n[bold]t3-mono[/bold]: configure your project\n")
    provider = Prompt.ask(
        "Auth provider",
        choices=list(catalog.auth_providers),
        default=auth_provider,
        console=console,
    )

    chosen: list[str] = []
    for extension_id, unit in catalog.extensions.items():
        if unit.requires_auth is not None and unit.requires_auth != provider:
            continue
        question = unit.label if not unit.summary else f"{unit.label} ({unit.summary})"
        if Confirm.ask(question, default=extension_id in extensions, console=console):
            chosen.append(extension_id)
    return Selection(auth_provider=provider, extensions=tuple(chosen))
