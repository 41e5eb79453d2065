import asyncio
import logging
import os

from aiogram import Bot
from dotenv import load_dotenv

from .application.bootstrap import bootstrap_app
from .application.bot_app import TelegramBotApp
from .application.container import AppConfig
from .application.metrics import configure_metrics_logger, configure_security_logger
from .domain.security.sanitize import MAX_UPLOAD_BYTES

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


def load_app_config(*, require_token: bool = True) -> AppConfig:
    bot_token = os.getenv("BOT_TOKEN", "").strip()
    if require_token and not bot_token:
        raise RuntimeError("BOT_TOKEN is empty. Put it to .env")
    allowed_hosts_raw = os.getenv("ASSET_ALLOWED_HOSTS", "").strip()
    allowed_hosts = {
        host.strip().lower()
        for host in allowed_hosts_raw.split(",")
        if host.strip()
    } or None
    config = AppConfig(
        bot_token=bot_token,
        db_path=os.getenv("DB_PATH", "/data/rightsdesk.db"),
        storage_root=os.getenv("STORAGE_ROOT", "/data/storage"),
        storage_public_url=os.getenv("STORAGE_PUBLIC_URL", "/files").rstrip("/"),
        metrics_log_path=os.getenv("METRICS_LOG_PATH", "").strip() or None,
        security_log_path=os.getenv("SECURITY_LOG_PATH", "").strip() or None,
        tenants_file=os.getenv("TENANTS_FILE", "tenants.yaml"),
        sync_tenants_on_start=_flag("SYNC_TENANTS_ON_START"),
        delete_missing_tenants=_flag("SYNC_DELETE_MISSING_TENANTS"),
        portal_tenant=os.getenv("PORTAL_TENANT", "").strip() or None,
        invitation_ttl_days=int(os.getenv("INVITATION_TTL_DAYS", "7")),
        session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", "60")),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(MAX_UPLOAD_BYTES))),
        checkout_base_url=os.getenv("CHECKOUT_BASE_URL", "http://localhost:3000").rstrip("/"),
        cwr_sender_id=os.getenv("CWR_SENDER_ID", "RDESK").strip() or "RDESK",
        mapping_file=os.getenv("MAPPING_FILE", "").strip() or None,
        asset_allowed_hosts=allowed_hosts,
        max_asset_size_bytes=int(os.getenv("ASSET_MAX_BYTES", "2000000")),
        bot_rate_limit=int(os.getenv("BOT_RATE_LIMIT", "20")),
    )
    logger.info(
        "Config loaded: db_path=%s, storage_root=%s, tenants_file=%s, sync_tenants=%s, "
        "portal_tenant=%s, invitation_ttl_days=%s, session_ttl_minutes=%s, asset_hosts=%s",
        config.db_path,
        config.storage_root,
        config.tenants_file,
        config.sync_tenants_on_start,
        config.portal_tenant or "-",
        config.invitation_ttl_days,
        config.session_ttl_minutes,
        ",".join(sorted(config.asset_allowed_hosts)) if config.asset_allowed_hosts else "any",
    )
    return config


def configure_audit_logs(config: AppConfig) -> None:
    if config.metrics_log_path:
        configure_metrics_logger(config.metrics_log_path)
    if config.security_log_path:
        configure_security_logger(config.security_log_path)


async def main():
    config = load_app_config()
    configure_audit_logs(config)
    logger.info("Bootstrapping application")
    async with bootstrap_app(config) as container:
        if config.sync_tenants_on_start:
            logger.info(
                "Syncing tenants from %s (delete_missing=%s)", config.tenants_file, config.delete_missing_tenants
            )
            await container.sync_tenants(config.tenants_file, delete_missing=config.delete_missing_tenants)
            logger.info("Tenants sync finished")
        else:
            logger.info("Skip tenants sync because SYNC_TENANTS_ON_START=0")

        logger.info("Building Telegram bot application")
        bot_app = TelegramBotApp(container)
        bot = Bot(config.bot_token)
        dp = bot_app.build_dispatcher()
        logger.info("Starting polling loop")
        try:
            await dp.start_polling(bot)
        except Exception:
            logger.exception("Polling stopped due to unexpected error")
            raise
        finally:
            logger.info("Polling loop finished")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down")


if __name__ == "__main__":
    run()
