# cohorthub/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
import logging

# Импортируем роутеры
from cohorthub.api.attendance import router as attendance_router
from cohorthub.api.problem_statement import router as problem_statement_router
from cohorthub.api.score import router as score_router
from cohorthub.api.task import router as task_router
from cohorthub.api.team import router as team_router
from cohorthub.api.user import router as user_router
from cohorthub.api.vote import router as vote_router

from cohorthub.core.settings import settings
from cohorthub.core.exceptions import BaseAppException
from cohorthub.schemas.response import ErrorDetail, ErrorResponse

# Логирование
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger("CohortHub.API")

app = FastAPI(
    title="CohortHub API",
    version="1.0.0",
    description="Teams, problem statement selection, peer voting and scores for a cohort",
)

# Middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Роутеры
app.include_router(attendance_router)
app.include_router(problem_statement_router)
app.include_router(score_router)
app.include_router(task_router)
app.include_router(team_router)
app.include_router(user_router)
app.include_router(vote_router)

# Health check & root
@app.get("/", tags=["Health"])
def root():
    return {"status": "CohortHub API is running!"}

@app.get("/health", tags=["Health"])
def health():
    return {"ok": True}

@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting CohortHub API ({settings.ENV})")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Stopping CohortHub API")

@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    """
    Все ошибки движка отдаются в форме ErrorResponse с machine-readable кодом.
    """
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path}: {exc.code}: {exc.message}")
    body = ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message, details=exc.details))
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"), headers=headers)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cohorthub.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.DEBUG,
    )
