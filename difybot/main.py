"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .api import router
from .config import get_settings, Settings
from .core import (
    CannedResponseMatcher,
    DedupGuard,
    DifyClient,
    PreferenceStore,
    Router,
    SlackIntegration,
)
from .core.config import get_bot_config

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,  # Ensure this config overrides any existing settings
    )


def build_router(settings: Settings, dify: DifyClient) -> Router:
    """Assemble the router and the in-memory state it owns."""
    matcher = CannedResponseMatcher()
    extra = matcher.load(get_bot_config(settings.config_path).canned_responses())
    if extra:
        logger.info(f"Loaded {extra} canned responses from {settings.config_path}")

    return Router(
        dify=dify,
        dedup=DedupGuard(
            capacity=settings.dedup_capacity,
            trim_interval=settings.dedup_trim_interval,
        ),
        preferences=PreferenceStore(
            default_model=settings.default_model,
            capacity=settings.preference_capacity,
        ),
        canned=matcher,
        show_thinking_indicator=settings.show_thinking_indicator,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting Dify Slack bot...")

    dify = DifyClient(
        api_key=settings.dify_api_key,
        base_url=settings.dify_base_url,
        timeout=settings.dify_timeout,
    )
    bot_router = build_router(settings, dify)
    bot_router.dedup.start()

    slack = SlackIntegration(
        bot_token=settings.slack_bot_token,
        app_token=settings.slack_app_token,
        router=bot_router,
        signing_secret=settings.slack_signing_secret,
    )
    app.state.router = bot_router
    app.state.slack = slack

    await slack.start()
    logger.info(f"Dify Slack bot running (default model: {settings.default_model.upper()})")

    yield

    # Shutdown
    logger.info("Shutting down Dify Slack bot...")
    await slack.stop()
    await bot_router.dedup.stop()
    await dify.close()


# Create FastAPI app
app = FastAPI(
    title="Dify Slack Bot",
    description="Slack bot answering with a Dify AI gateway",
    version=__version__,
    lifespan=lifespan,
)

# Include API routes
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "difybot.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
