import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from rightsdesk.admin import parse_args, run
from rightsdesk.application.bootstrap import bootstrap_app
from rightsdesk.application.container import AppConfig


class AdminCommandsTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(self.tmpdir.name)
        config = AppConfig(
            bot_token="",
            db_path=str(self.base / "admin.db"),
            storage_root=str(self.base / "storage"),
            tenants_file=str(self.base / "tenants.yaml"),
            sync_tenants_on_start=False,
        )
        self._bootstrap = bootstrap_app(config)
        self.container = await self._bootstrap.__aenter__()

    async def asyncTearDown(self):
        await self._bootstrap.__aexit__(None, None, None)
        self.tmpdir.cleanup()

    async def _run(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = await run(parse_args(list(argv)), self.container)
        return code, out.getvalue(), err.getvalue()

    def test_parse_args_requires_a_command(self):
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            parse_args([])
        args = parse_args(["export-cwr", "--user", "1", "--work", "3", "--work", "4"])
        self.assertEqual(args.works, [3, 4])

    async def test_demo_user_then_cwr_export(self):
        code, out, _ = await self._run("demo-user")
        self.assertEqual(code, 0)
        self.assertRegex(out, r"email: demo\+[0-9a-f]{8}@demo\.local")

        works = await self.container.copyright_service.list_works(1)
        self.assertEqual([w.work_title for w in works], ["MIDNIGHT HARBOR"])
        target = self.base / "out.V21"
        code, out, _ = await self._run("export-cwr", "--user", "1", "--work", str(works[0].id), "--output", str(target))
        self.assertEqual(code, 0)
        self.assertTrue(target.read_text(encoding="utf-8").startswith("HDR"))
        self.assertIn("records", out)

        code, _, err = await self._run("export-cwr", "--user", "2", "--work", str(works[0].id))
        self.assertEqual(code, 1)
        self.assertIn("No exportable works", err)

    async def test_maintenance_prints_counters(self):
        code, out, _ = await self._run("maintenance", "--action", "expire_invitations")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["expired_invitations"], 0)

    async def test_sync_tenants_and_missing_statement(self):
        (self.base / "tenants.yaml").write_text(
            "tenants:\n  - slug: north\n    display_name: North Music\n", encoding="utf-8"
        )
        code, _, _ = await self._run("sync-tenants")
        self.assertEqual(code, 0)
        tenants = await self.container.tenant_service.list_tenants()
        self.assertEqual([t.slug for t in tenants], ["north"])

        code, _, err = await self._run("statement", "404")
        self.assertEqual(code, 1)
        self.assertIn("Payout 404 not found", err)


if __name__ == "__main__":
    unittest.main()
