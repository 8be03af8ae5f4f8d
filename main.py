import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from config import Settings
from database.database import Base, create_db_engine, create_session_factory
from models import models  # noqa: F401  (registers the tables on Base)
from api import quiz, users, brands, trainings, analytics
from utils.errors import ServiceError, service_error_handler, validation_error_handler
from utils.quiz_generator import QuizGenerator
from utils.transcript import TranscriptFetcher

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(title=settings.app_name, description="API for brand training and quizzes")

    # Create database tables
    engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.SessionLocal = create_session_factory(engine)
    app.state.quiz_generator = QuizGenerator(settings)
    app.state.transcript_fetcher = TranscriptFetcher(settings.transcript_language)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Include routers
    app.include_router(quiz.router, prefix="/api/quiz", tags=["Quiz"])
    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(brands.router, prefix="/api/brands", tags=["Brands"])
    app.include_router(trainings.router, prefix="/api/trainings", tags=["Trainings"])
    app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])

    @app.get("/")
    def read_root():
        return {"message": f"Welcome to the {settings.app_name}"}

    logger.info(
        f"App ready: pass_threshold={settings.pass_threshold} "
        f"session_ttl={settings.session_ttl_minutes}min "
        f"domain_restriction={settings.domain_restriction or 'off'}"
    )
    return app

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
