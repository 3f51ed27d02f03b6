"""Questionary / prompt_toolkit theme for pbiscan.

Questionary uses prompt_toolkit under the hood. This module defines the
central styles so the workspace picker and the confirmation prompt look
consistent.
"""

from __future__ import annotations

from prompt_toolkit.styles import Style

QUESTIONARY_STYLE_SELECT = Style.from_dict(
    {
        "question": "bold ansibrightcyan",
        "answer": "bold ansibrightgreen",
        "pointer": "bold ansibrightgreen",
        "highlighted": "bold ansibrightgreen",
        "selected": "bold ansibrightgreen",
        "checkbox": "ansibrightblack",
        "checkbox-selected": "bold ansibrightgreen",
        "separator": "ansibrightblack",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
        "disabled": "ansibrightblack",
    }
)

QUESTIONARY_STYLE_CONFIRM = Style.from_dict(
    {
        "question": "bold ansibrightyellow",
        "answer": "bold ansibrightyellow",
        "pointer": "bold ansibrightyellow",
        "highlighted": "bold ansibrightyellow",
        "separator": "ansibrightblack",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
    }
)
