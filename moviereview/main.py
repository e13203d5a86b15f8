import sys

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from moviereview import errors
from moviereview.config import settings
from moviereview.authentication.router import router as auth_router
from moviereview.movies.router import router as movies_router
from moviereview.reviews.router import router as reviews_router
from moviereview.users.router import router as users_router


def configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)


configure_logging()

app = FastAPI(title="Movie Review API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(errors.AppError, errors.app_error_handler)
app.add_exception_handler(RequestValidationError, errors.request_validation_handler)
app.add_exception_handler(Exception, errors.unhandled_error_handler)

app.include_router(auth_router)
app.include_router(movies_router)
app.include_router(reviews_router)
app.include_router(users_router)


@app.get("/")
def read_root():
    return {"message": "Movie Review API is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("moviereview.main:app", host="0.0.0.0", port=8000)
