from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base
from .routers import custom_cart, estimate, variants

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("cutstock")

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Cut-to-Size Custom Orders",
    description="Dimensional pricing, on-demand variants and cart attachment for sheet, film and rod stock",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(custom_cart.router, prefix="/api")
app.include_router(estimate.router, prefix="/api")
app.include_router(variants.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "cutstock"}
