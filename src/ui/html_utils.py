"""Utilities for preparing HTML snippets before rendering in Streamlit."""
from html import escape
from textwrap import dedent


def html_block(template: str) -> str:
    """
    Normalize multi-line HTML so Streamlit doesn't treat it as Markdown code.

    Lines with 4+ leading spaces would render as code blocks, so every line
    is dedented and left-stripped.
    """
    lines = dedent(template).splitlines()
    return "\n".join(line.lstrip() for line in lines).strip()


def stat_card(label: str, value: object, accent: str = "#667eea") -> str:
    """Small RTL statistic card used on the home page and dashboards."""
    return html_block(
        f"""
        <div class="stat-card" dir="rtl" style="border-top: 4px solid {accent};">
            <div class="stat-value">{escape(str(value))}</div>
            <div class="stat-label">{escape(label)}</div>
        </div>
        """
    )
