"""
Point d'entrée principal de l'API de billetterie d'événements.
Démarrage : uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import app.models  # noqa: F401 (enregistre tous les modèles dans Base.metadata avant les routers)
from app.config import settings
from app.database import Base, build_engine, build_session_factory
from app.errors import AppError, InternalError, ValidationFailed
from app.routers import auth, events, inscriptions, payments, users
from app.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Cycle de vie de l'application : construit le moteur et la fabrique de sessions,
    crée les tables si demandé, démarre et arrête le scheduler APScheduler.
    """
    engine = build_engine(settings.DATABASE_URL)
    app.state.session_factory = build_session_factory(engine)
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
    if settings.SCHEDULER_ENABLED:
        start_scheduler(app.state.session_factory)
    yield
    stop_scheduler()
    engine.dispose()


app = FastAPI(
    title="Event App API",
    description="API de billetterie d'événements : comptes, événements, inscriptions",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS : autorise tous les ports localhost en développement (à restreindre en production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(events.router)
app.include_router(inscriptions.router)
app.include_router(payments.router)


def _validation_entries(errors) -> list[dict]:
    """
    Convertit les erreurs Pydantic en entrées {field, message}.
    Une violation de politique (mot de passe, nom, email) donne une entrée par règle.
    """
    entries = []
    for err in errors:
        loc = err.get("loc") or ()
        field = str(loc[-1]) if loc else "body"
        ctx = err.get("ctx") or {}

        if ctx.get("violations"):
            entries.extend({"field": field, "message": m} for m in ctx["violations"])
        elif err.get("type") == "value_error" and "error" in ctx:
            entries.append({"field": field, "message": str(ctx["error"])})
        else:
            entries.append({"field": field, "message": err.get("msg", "Valeur invalide.")})
    return entries


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Erreur interne sur %s %s : %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Entrée invalide : 400 avec la liste des violations, jamais journalisé comme faute serveur."""
    error = ValidationFailed(_validation_entries(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
    passe bien par CORSMiddleware (qui injecte les headers CORS).
    Le détail technique n'est renvoyé qu'en développement.
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    content = InternalError().to_dict()
    if settings.ENV == "development":
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "Event App API", "version": API_VERSION}
