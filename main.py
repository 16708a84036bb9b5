import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from knowledge_ingest.database import Base, SessionLocal, engine
from knowledge_ingest.fetcher import FetcherService
from knowledge_ingest.routes.articles import router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logger.info("Creating database tables if they don't exist...")
    Base.metadata.create_all(bind=engine)

    logger.info("Starting background knowledge fetcher...")
    fetcher = FetcherService()
    task = asyncio.create_task(fetcher.run(SessionLocal))

    yield

    # --- Shutdown ---
    logger.info("Shutting down background fetcher...")
    task.cancel()


app = FastAPI(
    title="Knowledge Ingestion API",
    description="Pulls articles from tech news and community feeds into one deduplicated knowledge base.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)
