from __future__ import annotations

from contextlib import asynccontextmanager

import aiosqlite
from aiosqlite import OperationalError

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS users (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  email TEXT UNIQUE NOT NULL,
  full_name TEXT NOT NULL DEFAULT '',
  role TEXT NOT NULL DEFAULT 'subscriber',
  password_hash TEXT NOT NULL,
  is_demo INTEGER NOT NULL DEFAULT 0,
  avatar_url TEXT,
  tg_user_id INTEGER UNIQUE,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sessions (
  token TEXT PRIMARY KEY,
  user_id INTEGER NOT NULL,
  expires_at TEXT NOT NULL,
  FOREIGN KEY(user_id) REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS one_time_tokens (
  token TEXT NOT NULL,
  purpose TEXT NOT NULL,
  user_id INTEGER NOT NULL,
  expires_at TEXT NOT NULL,
  consumed_at TEXT,
  PRIMARY KEY (token, purpose),
  FOREIGN KEY(user_id) REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS rate_limits (
  identifier TEXT NOT NULL,
  action_type TEXT NOT NULL,
  attempt_count INTEGER NOT NULL DEFAULT 0,
  first_attempt TEXT NOT NULL,
  last_attempt TEXT NOT NULL,
  blocked_until TEXT,
  UNIQUE (identifier, action_type)
);

CREATE TABLE IF NOT EXISTS security_events (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  event_type TEXT NOT NULL,
  severity TEXT NOT NULL,
  user_id INTEGER,
  event_data TEXT NOT NULL DEFAULT '{}',
  ip_address TEXT,
  user_agent TEXT,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS copyrights (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  internal_id TEXT NOT NULL,
  work_title TEXT NOT NULL,
  work_type TEXT NOT NULL DEFAULT 'ORI',
  iswc TEXT,
  language_code TEXT,
  duration_seconds INTEGER,
  status TEXT NOT NULL DEFAULT 'draft',
  akas TEXT NOT NULL DEFAULT '[]',
  validation_status TEXT NOT NULL DEFAULT 'pending',
  created_at TEXT NOT NULL,
  FOREIGN KEY(user_id) REFERENCES users(id),
  UNIQUE (user_id, internal_id)
);

CREATE TABLE IF NOT EXISTS copyright_writers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  copyright_id INTEGER NOT NULL,
  writer_name TEXT NOT NULL,
  writer_role TEXT NOT NULL DEFAULT 'composer',
  controlled_status TEXT NOT NULL DEFAULT 'NC',
  ownership_percentage REAL NOT NULL DEFAULT 0,
  ipi_number TEXT,
  performance_share REAL NOT NULL DEFAULT 0,
  mechanical_share REAL NOT NULL DEFAULT 0,
  synchronization_share REAL NOT NULL DEFAULT 0,
  print_share REAL NOT NULL DEFAULT 0,
  FOREIGN KEY(copyright_id) REFERENCES copyrights(id)
);

CREATE TABLE IF NOT EXISTS copyright_publishers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  copyright_id INTEGER NOT NULL,
  publisher_name TEXT NOT NULL,
  publisher_role TEXT NOT NULL DEFAULT 'E ',
  ownership_percentage REAL NOT NULL DEFAULT 0,
  ipi_number TEXT,
  performance_share REAL NOT NULL DEFAULT 0,
  mechanical_share REAL NOT NULL DEFAULT 0,
  synchronization_share REAL NOT NULL DEFAULT 0,
  print_share REAL NOT NULL DEFAULT 0,
  FOREIGN KEY(copyright_id) REFERENCES copyrights(id)
);

CREATE TABLE IF NOT EXISTS copyright_recordings (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  copyright_id INTEGER NOT NULL,
  isrc TEXT,
  recording_title TEXT,
  artist_name TEXT,
  duration_seconds INTEGER,
  release_date TEXT,
  FOREIGN KEY(copyright_id) REFERENCES copyrights(id)
);

CREATE TABLE IF NOT EXISTS copyright_exports (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  filename TEXT NOT NULL,
  work_ids TEXT NOT NULL DEFAULT '[]',
  record_count INTEGER NOT NULL DEFAULT 0,
  content TEXT NOT NULL DEFAULT '',
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS contracts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  title TEXT NOT NULL,
  counterparty_name TEXT NOT NULL DEFAULT '',
  contract_type TEXT NOT NULL,
  contract_status TEXT NOT NULL DEFAULT 'draft',
  start_date TEXT,
  end_date TEXT,
  advance_amount REAL NOT NULL DEFAULT 0,
  commission_percentage REAL NOT NULL DEFAULT 0,
  controlled_percentage REAL NOT NULL DEFAULT 0,
  territories TEXT NOT NULL DEFAULT '[]',
  royalty_splits TEXT NOT NULL DEFAULT '[]',
  recoupment_status TEXT NOT NULL DEFAULT 'none',
  advance_balance REAL NOT NULL DEFAULT 0,
  w9_url TEXT,
  direct_deposit_auth_url TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS royalties_import_staging (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  filename TEXT NOT NULL,
  detected_source TEXT NOT NULL DEFAULT 'Unknown',
  raw_data TEXT NOT NULL DEFAULT '[]',
  mapped_data TEXT NOT NULL DEFAULT '[]',
  unmapped_fields TEXT NOT NULL DEFAULT '[]',
  validation_errors TEXT NOT NULL DEFAULT '[]',
  validation_status TEXT NOT NULL DEFAULT 'pending',
  processing_status TEXT NOT NULL DEFAULT 'pending',
  batch_id INTEGER,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS royalty_allocations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  staging_id INTEGER,
  batch_id INTEGER,
  copyright_id INTEGER,
  client_id INTEGER,
  song_title TEXT NOT NULL DEFAULT '',
  artist TEXT,
  iswc TEXT,
  work_id TEXT,
  source TEXT,
  royalty_type TEXT,
  country TEXT,
  gross_amount REAL NOT NULL DEFAULT 0,
  share_percentage REAL,
  period_start TEXT,
  period_end TEXT,
  payment_date TEXT,
  comments TEXT,
  ownership_splits TEXT NOT NULL DEFAULT '{}',
  is_split INTEGER NOT NULL DEFAULT 0,
  parent_allocation_id INTEGER,
  created_at TEXT NOT NULL,
  FOREIGN KEY(staging_id) REFERENCES royalties_import_staging(id),
  FOREIGN KEY(parent_allocation_id) REFERENCES royalty_allocations(id)
);

CREATE TABLE IF NOT EXISTS reconciliation_batches (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  batch_id TEXT NOT NULL,
  source TEXT NOT NULL DEFAULT '',
  period TEXT,
  statement_total REAL NOT NULL DEFAULT 0,
  status TEXT NOT NULL DEFAULT 'Pending',
  date_received TEXT,
  created_at TEXT NOT NULL,
  UNIQUE (user_id, batch_id)
);

CREATE TABLE IF NOT EXISTS payouts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  client_id INTEGER NOT NULL,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  gross_royalties REAL NOT NULL DEFAULT 0,
  total_expenses REAL NOT NULL DEFAULT 0,
  net_payable REAL NOT NULL DEFAULT 0,
  amount_due REAL NOT NULL DEFAULT 0,
  royalties_to_date REAL NOT NULL DEFAULT 0,
  payments_to_date REAL NOT NULL DEFAULT 0,
  payment_method TEXT,
  payment_reference TEXT,
  workflow_stage TEXT NOT NULL DEFAULT 'draft',
  status TEXT NOT NULL DEFAULT 'pending',
  notes TEXT,
  failure_reason TEXT,
  paid_at TEXT,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS payout_expenses (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  payout_id INTEGER NOT NULL,
  description TEXT NOT NULL DEFAULT '',
  expense_type TEXT NOT NULL DEFAULT 'other',
  amount REAL NOT NULL DEFAULT 0,
  is_percentage INTEGER NOT NULL DEFAULT 0,
  percentage_rate REAL NOT NULL DEFAULT 0,
  FOREIGN KEY(payout_id) REFERENCES payouts(id)
);

CREATE TABLE IF NOT EXISTS payout_workflow_history (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  payout_id INTEGER NOT NULL,
  from_stage TEXT,
  to_stage TEXT NOT NULL,
  reason TEXT,
  changed_by INTEGER,
  created_at TEXT NOT NULL,
  FOREIGN KEY(payout_id) REFERENCES payouts(id)
);

CREATE TABLE IF NOT EXISTS payout_batch_operations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  operation_type TEXT NOT NULL,
  payout_ids TEXT NOT NULL DEFAULT '[]',
  total_count INTEGER NOT NULL DEFAULT 0,
  succeeded INTEGER NOT NULL DEFAULT 0,
  failed INTEGER NOT NULL DEFAULT 0,
  status TEXT NOT NULL DEFAULT 'pending',
  created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS client_account_balances (
  user_id INTEGER NOT NULL,
  client_id INTEGER NOT NULL,
  total_earned REAL NOT NULL DEFAULT 0,
  total_paid REAL NOT NULL DEFAULT 0,
  current_balance REAL NOT NULL DEFAULT 0,
  updated_at TEXT DEFAULT (datetime('now')),
  PRIMARY KEY (user_id, client_id)
);

CREATE TABLE IF NOT EXISTS sync_licenses (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  synch_id TEXT NOT NULL,
  project_title TEXT NOT NULL,
  media_type TEXT NOT NULL DEFAULT 'Other',
  synch_status TEXT NOT NULL DEFAULT 'Inquiry',
  payment_status TEXT NOT NULL DEFAULT 'Pending',
  invoice_status TEXT NOT NULL DEFAULT 'Not Issued',
  sync_type TEXT NOT NULL DEFAULT 'one_time',
  synch_agent TEXT,
  licensee_name TEXT,
  pub_fee REAL NOT NULL DEFAULT 0,
  master_fee REAL NOT NULL DEFAULT 0,
  currency TEXT NOT NULL DEFAULT 'USD',
  term_start TEXT,
  term_end TEXT,
  territories TEXT NOT NULL DEFAULT '[]',
  linked_copyright_ids TEXT NOT NULL DEFAULT '[]',
  pub_share_percentage REAL NOT NULL DEFAULT 100,
  master_share_percentage REAL NOT NULL DEFAULT 0,
  fee_allocations TEXT NOT NULL DEFAULT '[]',
  invoiced_amount REAL NOT NULL DEFAULT 0,
  payment_received REAL NOT NULL DEFAULT 0,
  notes TEXT,
  created_at TEXT NOT NULL,
  UNIQUE (user_id, synch_id)
);

CREATE TABLE IF NOT EXISTS revenue_sources (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id INTEGER NOT NULL,
  revenue_type TEXT NOT NULL,
  revenue_source TEXT NOT NULL DEFAULT '',
  annual_revenue REAL NOT NULL DEFAULT 0,
  currency TEXT NOT NULL DEFAULT 'USD',
  growth_rate REAL NOT NULL DEFAULT 0,
  confidence_level TEXT NOT NULL DEFAULT 'medium',
  is_recurring INTEGER NOT NULL DEFAULT 1,
  start_date TEXT,
  end_date TEXT,
  notes TEXT,
  created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS client_invitations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  subscriber_user_id INTEGER NOT NULL,
  email TEXT NOT NULL,
  role TEXT NOT NULL DEFAULT 'client',
  permissions TEXT NOT NULL DEFAULT '{}',
  token TEXT UNIQUE NOT NULL,
  status TEXT NOT NULL DEFAULT 'pending',
  expires_at TEXT NOT NULL,
  reminder_count INTEGER NOT NULL DEFAULT 0,
  reminder_sent_at TEXT,
  accepted_at TEXT,
  accepted_by INTEGER,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS client_portal_access (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  subscriber_user_id INTEGER NOT NULL,
  client_user_id INTEGER NOT NULL,
  role TEXT NOT NULL DEFAULT 'client',
  status TEXT NOT NULL DEFAULT 'active',
  permissions TEXT NOT NULL DEFAULT '{}',
  visibility_scope TEXT,
  expires_at TEXT,
  created_at TEXT NOT NULL,
  UNIQUE (subscriber_user_id, client_user_id)
);

CREATE TABLE IF NOT EXISTS client_data_associations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  subscriber_user_id INTEGER NOT NULL,
  client_user_id INTEGER NOT NULL,
  data_type TEXT NOT NULL,
  data_id INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  UNIQUE (subscriber_user_id, client_user_id, data_type, data_id)
);

CREATE TABLE IF NOT EXISTS tenants (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  slug TEXT UNIQUE NOT NULL,
  display_name TEXT NOT NULL,
  subdomain TEXT NOT NULL,
  brand_config TEXT NOT NULL DEFAULT '{}',
  enabled_modules TEXT NOT NULL DEFAULT '[]',
  status TEXT NOT NULL DEFAULT 'active',
  created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS checkout_sessions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  session_id TEXT UNIQUE NOT NULL,
  user_id INTEGER NOT NULL,
  email TEXT NOT NULL,
  product_type TEXT NOT NULL,
  product_id TEXT NOT NULL,
  billing_interval TEXT NOT NULL,
  product_name TEXT NOT NULL DEFAULT '',
  amount_cents INTEGER NOT NULL,
  currency TEXT NOT NULL DEFAULT 'usd',
  url TEXT NOT NULL,
  success_url TEXT NOT NULL,
  cancel_url TEXT NOT NULL,
  trial_days INTEGER NOT NULL DEFAULT 0,
  trial_modules TEXT NOT NULL DEFAULT '[]',
  status TEXT NOT NULL DEFAULT 'open',
  created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_copyrights_user ON copyrights(user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_writers_copyright ON copyright_writers(copyright_id);
CREATE INDEX IF NOT EXISTS idx_contracts_user ON contracts(user_id, contract_status);
CREATE INDEX IF NOT EXISTS idx_allocations_user ON royalty_allocations(user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_allocations_staging ON royalty_allocations(staging_id);
CREATE INDEX IF NOT EXISTS idx_allocations_client ON royalty_allocations(client_id);
CREATE INDEX IF NOT EXISTS idx_payouts_client ON payouts(user_id, client_id);
CREATE INDEX IF NOT EXISTS idx_sync_user ON sync_licenses(user_id, synch_status);
CREATE INDEX IF NOT EXISTS idx_invitations_status ON client_invitations(status, expires_at);
CREATE INDEX IF NOT EXISTS idx_security_events_time ON security_events(created_at DESC);
"""


class SQLiteDatabase:
    def __init__(self, path: str):
        self.path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self.path) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.executescript(SCHEMA_SQL)
            await self._ensure_copyright_columns(conn)
            await self._ensure_allocation_columns(conn)
            await self._ensure_invitation_columns(conn)
            await conn.commit()

    async def _add_columns(self, conn: aiosqlite.Connection, table: str, columns) -> None:
        for column, definition in columns:
            try:
                await conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
            except OperationalError as exc:
                if "duplicate column name" not in str(exc).lower():
                    raise

    async def _ensure_copyright_columns(self, conn: aiosqlite.Connection) -> None:
        await self._add_columns(
            conn,
            "copyrights",
            (
                ("akas", "TEXT NOT NULL DEFAULT '[]'"),
                ("validation_status", "TEXT NOT NULL DEFAULT 'pending'"),
            ),
        )

    async def _ensure_allocation_columns(self, conn: aiosqlite.Connection) -> None:
        await self._add_columns(
            conn,
            "royalty_allocations",
            (
                ("client_id", "INTEGER"),
                ("ownership_splits", "TEXT NOT NULL DEFAULT '{}'"),
                ("is_split", "INTEGER NOT NULL DEFAULT 0"),
                ("parent_allocation_id", "INTEGER"),
            ),
        )

    async def _ensure_invitation_columns(self, conn: aiosqlite.Connection) -> None:
        await self._add_columns(
            conn,
            "client_invitations",
            (
                ("reminder_count", "INTEGER NOT NULL DEFAULT 0"),
                ("reminder_sent_at", "TEXT"),
            ),
        )

    @asynccontextmanager
    async def connect(self):
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        finally:
            await conn.close()
