from __future__ import annotations

import io

import pytest
from rich.console import Console

from t3_mono import prompts
from t3_mono.catalog import load_catalog


def _quiet_console() -> Console:
    return Console(file=io.StringIO())


def test_prompt_selection_skips_extensions_needing_other_auth(monkeypatch: pytest.MonkeyPatch) -> None:
    asked: list[str] = []

    def fake_confirm(question: str, **kwargs: object) -> bool:
        asked.append(question)
        return bool(kwargs["default"]) or question.startswith("Restate")

    monkeypatch.setattr(prompts.Prompt, "ask", lambda *args, **kwargs: "next-auth")
    monkeypatch.setattr(prompts.Confirm, "ask", fake_confirm)

    selection = prompts.prompt_selection(
        load_catalog(),
        auth_provider="better-auth",
        extensions=("ai",),
        console=_quiet_console(),
    )

    assert selection.auth_provider == "next-auth"
    assert selection.extensions == ("ai", "restate")
    assert [q.split(" (")[0] for q in asked] == ["AI Agents", "UI Components", "Restate Workflows"]


def test_prompt_selection_defaults_come_from_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    defaults: dict[str, object] = {}

    def fake_prompt(question: str, **kwargs: object) -> str:
        defaults["auth"] = kwargs["default"]
        return str(kwargs["default"])

    def fake_confirm(question: str, **kwargs: object) -> bool:
        return bool(kwargs["default"])

    monkeypatch.setattr(prompts.Prompt, "ask", fake_prompt)
    monkeypatch.setattr(prompts.Confirm, "ask", fake_confirm)

    selection = prompts.prompt_selection(
        load_catalog(),
        auth_provider="better-auth",
        extensions=("cmd", "ui"),
        console=_quiet_console(),
    )

    assert defaults["auth"] == "better-auth"
    assert selection.extensions == ("ui", "cmd")
