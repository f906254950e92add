import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quizmaster.config import get_settings
from quizmaster.database import SessionLocal, init_db
from quizmaster.errors import QuizMasterError
from quizmaster.gateway import QuizGateway
from quizmaster.routers import auth, game, quiz
from quizmaster.seed import ensure_admin, seed_demo_quizzes

settings = get_settings()
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("quizmaster")

app = FastAPI(
    title="QuizMaster - Timed Quiz Contests"
)


@app.exception_handler(QuizMasterError)
async def quizmaster_error_handler(request: Request, exc: QuizMasterError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


# Anything else is a bug; log the trace, keep the details server side
@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


@app.get("/version")
def get_version():
    return {"version": "1.0.0"}


# Include Routers
app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(quiz.router, prefix="/api", tags=["quiz"])
app.include_router(game.router, tags=["game"])


# Tables, admin record and demo data on startup
@app.on_event("startup")
def prepare_store():
    init_db()
    db = SessionLocal()
    try:
        gateway = QuizGateway(db)
        ensure_admin(gateway, settings)
        if settings.SEED_DEMO_DATA:
            seed_demo_quizzes(gateway)
    finally:
        db.close()


@app.get("/")
async def read_root():
    return {"app": "QuizMaster", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
