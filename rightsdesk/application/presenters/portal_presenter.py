from __future__ import annotations

from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ...domain.accounts import User
from ...domain.contracts import Contract
from ...domain.copyright import WorkDetails
from ...domain.royalties import RoyaltyAllocation
from ...domain.sync import SyncLicense
from ..pages import Page, PageButton
from ..queries.portal import ClientDashboard

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class PortalPresenter:
    def __init__(self, templates_dir: Path | None = None):
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=select_autoescape(enabled_extensions=("j2",), default_for_string=True, default=True),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _main_menu_buttons(self) -> list[list[PageButton]]:
        return [
            [PageButton("📊 Balance", "menu:dashboard"), PageButton("💰 Royalties", "menu:royalties")],
            [PageButton("🎼 Works", "menu:works"), PageButton("📄 Contracts", "menu:contracts")],
            [PageButton("🎬 Sync deals", "menu:sync")],
        ]

    def _render(self, template: str, **context) -> str:
        return self._env.get_template(template).render(**context).strip()

    def start_page(self, user: User | None, *, brand_name: str | None = None) -> Page:
        text = self._render("start_page.j2", user=user, brand_name=brand_name)
        return Page(text, buttons=self._main_menu_buttons() if user else [])

    def link_result_page(self, user: User | None, *, missing_token: bool = False) -> Page:
        text = self._render("link_result.j2", user=user, missing_token=missing_token)
        return Page(text, buttons=self._main_menu_buttons() if user else [])

    def not_linked_page(self) -> Page:
        return self.start_page(None)

    def no_access_page(self) -> Page:
        return Page("Your portal access is not active. Ask your publisher to send a new invitation.")

    def portal_disabled_page(self) -> Page:
        return Page("The client portal is not enabled for this workspace.")

    def rate_limited_page(self) -> Page:
        return Page("Too many requests, please wait a minute and try again.")

    def dashboard_page(self, dashboard: ClientDashboard) -> Page:
        return Page(self._render("dashboard_page.j2", dashboard=dashboard), buttons=self._main_menu_buttons())

    def royalties_page(self, rows: Sequence[RoyaltyAllocation]) -> Page:
        return Page(self._render("royalties_page.j2", rows=rows), buttons=self._main_menu_buttons())

    def works_page(self, works: Sequence[WorkDetails]) -> Page:
        return Page(self._render("works_page.j2", works=works), buttons=self._main_menu_buttons())

    def contracts_page(self, contracts: Sequence[Contract]) -> Page:
        return Page(self._render("contracts_page.j2", contracts=contracts), buttons=self._main_menu_buttons())

    def sync_page(self, licenses: Sequence[SyncLicense]) -> Page:
        return Page(self._render("sync_page.j2", licenses=licenses), buttons=self._main_menu_buttons())
