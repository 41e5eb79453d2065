import tempfile
import unittest
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from rightsdesk.application.queries import PortalQueries
from rightsdesk.domain.accounts import User, UserRole
from rightsdesk.domain.billing import CheckoutService
from rightsdesk.domain.contracts import ContractParty, ContractService, ContractStatus, ContractType
from rightsdesk.domain.copyright import CopyrightService
from rightsdesk.domain.portal import AccessStatus, InvitationStatus, PortalAccessService, VisibilityScope
from rightsdesk.domain.royalties import (
    AllocationService,
    PayoutService,
    PayoutStage,
    ProcessingStatus,
    SplitStatus,
    StatementImportService,
    rows_from_csv,
)
from rightsdesk.domain.security import RateLimitEntry, Severity
from rightsdesk.domain.sync import SyncService
from rightsdesk.domain.tenants import BrandConfig, TenantStatus
from rightsdesk.domain.valuation import CatalogValuationService
from rightsdesk.infrastructure.sqlite import (
    SQLiteAccountsRepository,
    SQLiteAllocationsRepository,
    SQLiteAssociationsRepository,
    SQLiteBalancesRepository,
    SQLiteCheckoutSessionsRepository,
    SQLiteContractsRepository,
    SQLiteCopyrightExportsRepository,
    SQLiteCopyrightsRepository,
    SQLiteDatabase,
    SQLiteInvitationsRepository,
    SQLiteOneTimeTokensRepository,
    SQLitePayoutsRepository,
    SQLitePortalAccessRepository,
    SQLiteRateLimitRepository,
    SQLiteRevenueSourcesRepository,
    SQLiteSecurityEventsRepository,
    SQLiteStagingRepository,
    SQLiteSyncLicensesRepository,
    SQLiteTenantsRepository,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

STATEMENT_CSV = (
    "Work Title,IP Name,ISWC,Current Quarter Royalties,Country\n"
    "Midnight Harbor,Ava Demo,T-123456789-0,$100.00,USA\n"
    "Paper Planes Over Oslo,Nobody Known,,$20.50,Norway\n"
)


class FixedClock:
    def now(self) -> datetime:
        return NOW


class FixedTokens:
    def token(self, nbytes: int = 32) -> str:
        return "token"

    def hex(self, nbytes: int = 4) -> str:
        return "0f" * nbytes


class SQLiteRepositoriesTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db_path = Path(self.tmpdir.name) / "test.db"
        self.db = SQLiteDatabase(str(self.db_path))
        await self.db.init()
        self.accounts = SQLiteAccountsRepository(self.db)
        self.copyrights = SQLiteCopyrightsRepository(self.db)
        self.allocations = SQLiteAllocationsRepository(self.db)
        self.associations = SQLiteAssociationsRepository(self.db)
        self.copyright_service = CopyrightService(
            copyrights=self.copyrights,
            exports=SQLiteCopyrightExportsRepository(self.db),
            clock=FixedClock(),
        )

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def _create_user(self, email: str = "owner@example.com", role: UserRole = UserRole.SUBSCRIBER) -> int:
        return await self.accounts.create_user(email=email, password_hash="hash", full_name="Owner", role=role)

    async def _harbor_work(self, user_id: int) -> int:
        result = await self.copyright_service.register_work(
            user_id, work_title="MIDNIGHT HARBOR", iswc="T-123456789-0", akas=["Harbor Lights"]
        )
        await self.copyright_service.add_writer(
            result.id,
            {"writer_name": "Ava Demo", "controlled_status": "C", "ownership_percentage": 100},
        )
        return result.id

    async def test_init_is_repeatable(self):
        await self.db.init()
        async with self.db.connect() as conn:
            cur = await conn.execute("PRAGMA table_info(royalty_allocations)")
            columns = {row["name"] for row in await cur.fetchall()}
        self.assertTrue({"client_id", "ownership_splits", "is_split", "parent_allocation_id"} <= columns)

    async def test_users_and_telegram_links(self):
        first = await self._create_user()
        second = await self._create_user("second@example.com", UserRole.CLIENT)
        user = await self.accounts.get_by_email("OWNER@example.com")
        self.assertEqual(user.id, first)
        self.assertIs(user.role, UserRole.SUBSCRIBER)
        self.assertFalse(user.is_demo)

        await self.accounts.link_telegram(first, 777)
        await self.accounts.link_telegram(second, 777)
        self.assertEqual((await self.accounts.get_by_telegram(777)).id, second)
        self.assertIsNone((await self.accounts.get_user(first)).tg_user_id)

    async def test_one_time_tokens_are_consumed_once(self):
        user_id = await self._create_user()
        tokens = SQLiteOneTimeTokensRepository(self.db)
        await tokens.create(token="abc", purpose="reset", user_id=user_id, expires_at=NOW + timedelta(hours=1))
        await tokens.create(token="old", purpose="reset", user_id=user_id, expires_at=NOW - timedelta(hours=1))
        self.assertIsNone(await tokens.consume(token="abc", purpose="link", now=NOW))
        self.assertEqual(await tokens.consume(token="abc", purpose="reset", now=NOW), user_id)
        self.assertIsNone(await tokens.consume(token="abc", purpose="reset", now=NOW))
        self.assertIsNone(await tokens.consume(token="old", purpose="reset", now=NOW))

    async def test_copyright_details_and_sequences(self):
        owner = await self._create_user()
        work_id = await self._harbor_work(owner)
        await self.copyright_service.add_publisher(work_id, {"publisher_name": "North Music", "publisher_role": "E"})
        second = await self.copyright_service.register_work(owner, work_title="SUNRISE AVENUE")
        other = await self.copyright_service.register_work(owner + 1, work_title="ELSEWHERE")
        self.assertEqual(second.internal_id, "CW-2024-000002")
        self.assertEqual(other.internal_id, "CW-2024-000001")

        details = await self.copyright_service.list_work_details(owner)
        self.assertEqual([d.copyright.id for d in details], [second.id, work_id])
        harbor = details[1]
        self.assertEqual(harbor.copyright.akas, ("Harbor Lights",))
        self.assertEqual(harbor.writer_names, ["Ava Demo"])
        self.assertEqual(harbor.publishers[0].publisher_role, "E ")
        self.assertEqual(await self.copyright_service.list_work_details(owner, ids=[]), [])

        self.assertTrue(await self.copyright_service.delete_work(work_id))
        self.assertEqual(await self.copyrights.list_writers([work_id]), [])

    async def test_contracts_round_trip_and_expiry(self):
        repo = SQLiteContractsRepository(self.db)
        active = await repo.create(
            1,
            {
                "title": "Ava publishing",
                "counterparty_name": "Ava Demo",
                "contract_type": ContractType.PUBLISHING,
                "contract_status": ContractStatus.ACTIVE,
                "end_date": date(2024, 1, 31),
                "territories": ("US", "GB"),
                "royalty_splits": (ContractParty("Ava Demo", performance_percentage=50),),
            },
        )
        draft = await repo.create(
            1,
            {
                "title": "Draft deal",
                "counterparty_name": "Bo",
                "contract_type": ContractType.ARTIST,
                "contract_status": ContractStatus.DRAFT,
                "end_date": date(2024, 1, 31),
            },
        )
        contract = await repo.get(active)
        self.assertEqual(contract.territories, ("US", "GB"))
        self.assertEqual(contract.royalty_splits[0].performance_percentage, 50)
        self.assertEqual(contract.end_date, date(2024, 1, 31))

        self.assertEqual(await repo.expire_before(date(2024, 5, 1)), 1)
        self.assertIs((await repo.get(active)).contract_status, ContractStatus.EXPIRED)
        self.assertIs((await repo.get(draft)).contract_status, ContractStatus.DRAFT)
        self.assertEqual([c.id for c in await repo.list_for_user(1, ids=[draft])], [draft])
        with self.assertRaises(ValueError):
            await repo.update(draft, {"owner": "x"})

    async def test_statement_import_end_to_end(self):
        owner = await self._create_user()
        await self._harbor_work(owner)
        staging = SQLiteStagingRepository(self.db)
        service = StatementImportService(
            staging=staging, allocations=self.allocations, copyrights=self.copyright_service
        )
        staged = await service.import_statement(owner, "q1.csv", rows_from_csv(STATEMENT_CSV))
        self.assertEqual(staged.source, "BMI")
        result = await service.process_staging(staged.staging_id)
        self.assertEqual((result.created, result.matched), (2, 1))
        self.assertIs((await staging.get(staged.staging_id)).processing_status, ProcessingStatus.NEEDS_REVIEW)

        rows = await self.allocations.list_for_user(owner, staging_id=staged.staging_id)
        self.assertEqual(sorted(r.country for r in rows), ["NO", "US"])
        self.assertEqual(sum(r.gross_amount for r in rows), 120.5)

        self.assertTrue(await service.delete_staging(staged.staging_id))
        self.assertEqual(await self.allocations.list_for_user(owner), [])

    async def test_portal_admin_counts_split_royalties_once(self):
        owner = await self._create_user()
        client_id = await self._create_user("admin-client@example.com", UserRole.CLIENT)
        work_id = (await self.copyright_service.register_work(owner, work_title="MIDNIGHT HARBOR")).id
        for name in ("Ava Demo", "Bo Lee"):
            await self.copyright_service.add_writer(
                work_id, {"writer_name": name, "controlled_status": "C", "ownership_percentage": 50}
            )
        parent = await self.allocations.create(
            owner, {"song_title": "MIDNIGHT HARBOR", "gross_amount": 100.0, "copyright_id": work_id}
        )
        allocation_service = AllocationService(allocations=self.allocations, copyrights=self.copyright_service)
        split = await allocation_service.split_allocation(parent)
        self.assertIs(split.status, SplitStatus.OK)
        self.assertEqual(len(await allocation_service.list_allocations(owner)), 3)

        access = SQLitePortalAccessRepository(self.db)
        await access.grant(subscriber_user_id=owner, client_user_id=client_id, role="admin", permissions={},
                           expires_at=None, created_at=NOW)
        balances = SQLiteBalancesRepository(self.db)
        queries = PortalQueries(
            access=PortalAccessService(access=access, associations=self.associations, clock=FixedClock()),
            copyrights=self.copyright_service,
            contracts=ContractService(contracts=SQLiteContractsRepository(self.db), clock=FixedClock()),
            allocations=allocation_service,
            sync=SyncService(
                licenses=SQLiteSyncLicensesRepository(self.db), copyrights=self.copyright_service, clock=FixedClock()
            ),
            payouts=PayoutService(
                payouts=SQLitePayoutsRepository(self.db), allocations=self.allocations, balances=balances,
                clock=FixedClock(),
            ),
        )
        client = User(id=client_id, email="admin-client@example.com", full_name="Client", role=UserRole.CLIENT,
                      password_hash="hash")

        rows = await queries.client_royalties(client)
        self.assertEqual([(r.id, r.gross_amount) for r in rows], [(parent, 100.0)])
        dashboard = await queries.client_dashboard(client)
        self.assertEqual(dashboard.total_royalties, 100.0)

    async def test_payout_flow_and_balances(self):
        owner = await self._create_user()
        client = await self._create_user("client@example.com", UserRole.CLIENT)
        direct = await self.allocations.create(
            owner, {"song_title": "A", "gross_amount": 300.0, "client_id": client, "period_end": "2024-02-15"}
        )
        shared = await self.allocations.create(owner, {"song_title": "B", "gross_amount": 200.0, "period_end": "2024-03-01"})
        await self.allocations.create(owner, {"song_title": "C", "gross_amount": 50.0, "period_end": "2024-03-01"})
        await self.allocations.create(
            owner,
            {"song_title": "A", "gross_amount": 150.0, "client_id": client, "parent_allocation_id": direct,
             "is_split": True, "period_end": "2024-02-15"},
        )
        await self.associations.assign(subscriber_user_id=owner, client_user_id=client,
                                       data_type="royalty_allocation", data_id=shared, created_at=NOW)
        self.assertEqual(await self.allocations.sum_for_client(owner, client, "2024-01-01", "2024-03-31"), 500.0)
        self.assertEqual(await self.allocations.sum_for_client(owner, client, "2024-03-01", "2024-03-31"), 200.0)

        balances = SQLiteBalancesRepository(self.db)
        service = PayoutService(
            payouts=SQLitePayoutsRepository(self.db), allocations=self.allocations, balances=balances,
            clock=FixedClock(),
        )
        payout = (await service.create_payout(owner, client, "2024-01-01", "2024-03-31", payment_method="ACH")).payout
        self.assertEqual(payout.gross_royalties, 500.0)
        for stage in (PayoutStage.PENDING_REVIEW, PayoutStage.APPROVED, PayoutStage.PROCESSING, PayoutStage.PAID):
            result = await service.change_stage(payout.id, stage, payment_reference="ACH-1")
        self.assertIs(result.payout.workflow_stage, PayoutStage.PAID)
        self.assertEqual(result.payout.paid_at, NOW)
        self.assertEqual(len(await service.history(payout.id)), 5)

        balance = await balances.apply_payment(owner, client, earned=100.0, paid=40.0)
        self.assertEqual((balance.total_earned, balance.total_paid, balance.current_balance), (600.0, 540.0, 60.0))

        operation = await service.bulk_update(owner, [payout.id], "approve")
        self.assertEqual((operation.succeeded, operation.failed, operation.status), (0, 1, "failed"))

    async def test_sync_license_allocations_round_trip(self):
        owner = await self._create_user()
        work_id = await self._harbor_work(owner)
        service = SyncService(
            licenses=SQLiteSyncLicensesRepository(self.db), copyrights=self.copyright_service, clock=FixedClock()
        )
        result = await service.create_license(
            owner,
            {"project_title": "Harbor Lights", "media_type": "Film", "pub_fee": 1000, "master_fee": 200,
             "master_share_percentage": 50, "linked_copyright_ids": [work_id], "territories": ["us"],
             "term_start": "2024-06-01", "term_end": "2025-06-01"},
        )
        license = await service.get_license(result.license.id)
        self.assertEqual(license.synch_id, "SYNC-2024-0001")
        self.assertEqual(license.linked_copyright_ids, (work_id,))
        self.assertEqual(license.term_end, date(2025, 6, 1))
        self.assertEqual([(a.fee_type, a.controlled_amount) for a in license.fee_allocations],
                         [("publishing", 1000.0), ("master", 100.0)])
        self.assertEqual([lic.id for lic in await service.list_licenses(owner, ids=[license.id])], [license.id])

    async def test_revenue_sources_and_checkout(self):
        owner = await self._create_user()
        valuation = CatalogValuationService(
            copyrights=self.copyright_service, revenue_sources=SQLiteRevenueSourcesRepository(self.db)
        )
        errors = await valuation.add_revenue_source(
            owner, {"revenue_source": "Label", "annual_revenue": "1200", "revenue_type": "streaming",
                    "confidence_level": "medium", "is_recurring": "false"}
        )
        self.assertEqual(errors, [])
        stored = (await valuation.list_revenue_sources(owner))[0]
        self.assertEqual((stored.annual_revenue, stored.is_recurring), (1200.0, False))
        self.assertFalse(await valuation.delete_revenue_source(owner + 1, stored.id))

        checkout = CheckoutService(
            sessions=SQLiteCheckoutSessionsRepository(self.db), tokens=FixedTokens(), clock=FixedClock()
        )
        user = await self.accounts.get_user(owner)
        created = await checkout.create_checkout_session(user, "module", "sync", trial_modules=["sync"])
        session = await checkout.get_session(created.session_id)
        self.assertEqual((session.interval, session.amount_cents, session.trial_days), ("month", 14900, 14))
        self.assertEqual(session.trial_modules, ("sync",))
        self.assertEqual(session.created_at, NOW)

    async def test_invitations_reminders_and_cleanup(self):
        repo = SQLiteInvitationsRepository(self.db)

        async def invite(email, expires_in):
            return await repo.create(subscriber_user_id=1, email=email, role="client", permissions={"view": True},
                                     token=email, expires_at=NOW + expires_in, created_at=NOW - timedelta(days=5))

        soon = await invite("soon@example.com", timedelta(days=2))
        overdue = await invite("overdue@example.com", timedelta(days=-1))
        await invite("later@example.com", timedelta(days=6))

        due = await repo.needing_reminders(NOW, within_days=3, quiet_hours=24)
        self.assertEqual([i.id for i in due], [soon])
        await repo.mark_reminder_sent(soon, NOW)
        self.assertEqual(await repo.needing_reminders(NOW + timedelta(hours=1), within_days=3, quiet_hours=24), [])
        reminded = await repo.get(soon)
        self.assertEqual((reminded.reminder_count, reminded.reminder_sent_at), (1, NOW))
        self.assertEqual(reminded.permissions, {"view": True})

        await repo.set_status(soon, InvitationStatus.ACCEPTED, accepted_by=9, accepted_at=NOW)
        await repo.set_status(soon, InvitationStatus.ACCEPTED)
        self.assertEqual((await repo.get_by_token("soon@example.com")).accepted_by, 9)

        self.assertEqual(await repo.expire_past_due(NOW), 1)
        self.assertIs((await repo.get(overdue)).status, InvitationStatus.EXPIRED)
        self.assertEqual(await repo.delete_expired_before(NOW - timedelta(days=30)), 0)
        self.assertEqual(await repo.force_cleanup(NOW), 1)
        self.assertEqual(len(await repo.list_for_subscriber(1)), 2)

    async def test_portal_access_and_associations(self):
        access = SQLitePortalAccessRepository(self.db)
        access_id = await access.grant(subscriber_user_id=1, client_user_id=5, role="client", permissions={},
                                       expires_at=NOW - timedelta(minutes=1), created_at=NOW)
        scope = VisibilityScope("custom", work_ids=(3, 4))
        await access.set_scope(access_id, scope)
        stored = await access.find(1, 5)
        self.assertEqual(stored.visibility_scope, scope)

        self.assertEqual(await access.expire_past_due(NOW), 1)
        self.assertIs((await access.get(access_id)).status, AccessStatus.EXPIRED)
        await access.reactivate(access_id, role="admin", permissions={"all": True})
        reactivated = await access.get(access_id)
        self.assertTrue(reactivated.is_active(NOW))
        self.assertEqual(reactivated.role, "admin")

        for data_id in (7, 3, 7):
            await self.associations.assign(subscriber_user_id=1, client_user_id=5, data_type="copyright",
                                           data_id=data_id, created_at=NOW)
        self.assertEqual(await self.associations.list_ids(1, 5, "copyright"), [3, 7])
        self.assertTrue(await self.associations.unassign(subscriber_user_id=1, client_user_id=5,
                                                         data_type="copyright", data_id=3))
        self.assertEqual(len(await self.associations.list_for_client(5)), 1)

    async def test_tenants_upsert_and_prune(self):
        repo = SQLiteTenantsRepository(self.db)
        first = await repo.add_or_update(slug="acme", display_name="Acme", subdomain="acme",
                                         brand_config=BrandConfig(primary="1 1% 1%"),
                                         enabled_modules=["client_portal"])
        again = await repo.add_or_update(slug="acme", display_name="Acme Music", subdomain="acme",
                                         brand_config=BrandConfig(), enabled_modules=["client_portal"],
                                         status=TenantStatus.SUSPENDED)
        await repo.add_or_update(slug="beta", display_name="Beta", subdomain="beta", brand_config=BrandConfig(),
                                 enabled_modules=[])
        self.assertEqual(first, again)
        acme = await repo.get_by_slug("acme")
        self.assertEqual((acme.display_name, acme.status), ("Acme Music", TenantStatus.SUSPENDED))
        self.assertEqual(acme.enabled_modules, ("client_portal",))

        await repo.set_brand_config("acme", BrandConfig(heading_font="Lora"))
        self.assertEqual((await repo.get_by_slug("acme")).brand_config.heading_font, "Lora")
        self.assertEqual(await repo.delete_not_in({"acme"}), 1)
        self.assertEqual([t.slug for t in await repo.list_all()], ["acme"])

    async def test_rate_limits_and_security_events(self):
        limits = SQLiteRateLimitRepository(self.db)
        entry = RateLimitEntry("1.2.3.4", "sign_in", 1, NOW, NOW)
        await limits.save(entry)
        await limits.save(RateLimitEntry("1.2.3.4", "sign_in", 5, NOW, NOW, blocked_until=NOW + timedelta(minutes=15)))
        stored = await limits.get("1.2.3.4", "sign_in")
        self.assertEqual(stored.attempt_count, 5)
        self.assertTrue(stored.is_blocked(NOW))
        self.assertEqual(await limits.purge_older_than(NOW + timedelta(hours=1)), 1)

        events = SQLiteSecurityEventsRepository(self.db)
        for severity in (Severity.LOW, Severity.HIGH):
            await events.add(event_type="login_failed", severity=severity, created_at=NOW, user_id=None,
                             event_data={"email": "a@example.com"}, ip_address="1.2.3.4", user_agent=None)
        high = await events.list_recent(10, severity=Severity.HIGH)
        self.assertEqual(len(high), 1)
        self.assertEqual(high[0].event_data, {"email": "a@example.com"})
        self.assertEqual(len(await events.list_recent(10)), 2)


if __name__ == "__main__":
    unittest.main()
