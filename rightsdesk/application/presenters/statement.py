from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from ...domain.royalties import PayoutStatement
from .portal_presenter import TEMPLATES_DIR


class StatementRenderer:
    """Plain-text payout statement, the body of the PDF/email the web app sends."""

    def __init__(self, templates_dir: Path | None = None):
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, statement: PayoutStatement) -> str:
        template = self._env.get_template("statement.txt")
        return template.render(
            payout=statement.payout,
            expenses=statement.expenses,
            history=statement.history,
            balance=statement.balance,
        )
