"""
FastAPI application entrypoint. Run with: uvicorn quizflow.main:app --reload --port 8000

Routes are mounted at root:
  - Auth:    POST /auth/register, POST /auth/login, GET /auth/me
  - Files:   POST /files/upload, GET /files, GET /files/{id}, DELETE /files/{id}
  - Quizzes: POST /quizzes, GET /quizzes, GET /quizzes/{id}, DELETE /quizzes/{id},
             PUT /quizzes/{id}/questions, POST /quizzes/replace-question, GET /quizzes/{id}/download
  - Admin:   GET /admin/analytics (ADMIN role)
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quizflow.api.admin import router as admin_router
from quizflow.api.auth import router as auth_router
from quizflow.api.files import router as files_router
from quizflow.api.quizzes import router as quizzes_router
from quizflow.config import settings
from quizflow.llm import api_key_for

app = FastAPI(
    title="QuizFlow API",
    description="Lecture files -> multiple-choice quizzes -> QTI 2.1 packages for LMS import.",
    version="0.1.0",
)

_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins if _origins else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(files_router)
app.include_router(quizzes_router)
app.include_router(admin_router)


@app.on_event("startup")
def startup():
    """Init DB and log LLM key status. Fail fast if production uses the default SECRET_KEY."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    _log = logging.getLogger("quizflow.main")
    if settings.is_production and settings.uses_default_secret:
        _log.critical("SECRET_KEY must be set in production. Set SECRET_KEY in env or .env.")
        raise RuntimeError("SECRET_KEY must be set in production. Set SECRET_KEY in env or .env.")
    provider = settings.llm_provider
    key = api_key_for(provider)
    if key:
        _log.info("%s: API key loaded (len=%s). Real API will be used for question generation.", provider, len(key))
    elif settings.is_production:
        _log.error("%s: No API key configured; quiz generation will fail.", provider)
    else:
        _log.warning("%s: No API key. Set it in backend/.env for real generation (using mock).", provider)
    from quizflow.database import init_db
    init_db()


@app.get("/health")
def health():
    """Health check (JSON)."""
    return {"status": "ok", "message": "QuizFlow API"}
