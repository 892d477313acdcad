# server.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from teestudio import __version__
from teestudio import auth, cart, designs, orders, products, studio
from teestudio.db import Base, async_session_maker, engine
from teestudio.errors import register_exception_handlers
from teestudio.mockups import load_mockups
from teestudio.settings import settings

# --- Logging Configuration ---
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="[%(asctime)s] [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Storefront API for custom printed apparel: catalog, design studio, cart and orders.",
        version=__version__,
    )

    # --- CORS Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for module in (auth, products, studio, designs, cart, orders):
        app.include_router(module.router, prefix=settings.API_V1_PREFIX)

    # Filled in on startup; rendering falls back to solid fills while empty.
    app.state.mockups = {}

    @app.on_event("startup")
    async def on_startup():
        """Create tables, seed the catalog and fetch the mockup images."""
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("Database tables verified/created.")

        if settings.SEED_CATALOG:
            async with async_session_maker() as session:
                await products.seed_catalog(session)

        app.state.mockups = await load_mockups()

    @app.get("/", tags=["Health"])
    async def read_root():
        return {"message": f"{settings.PROJECT_NAME} ready", "version": __version__}

    return app


app = create_app()
