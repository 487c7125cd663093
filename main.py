import uvicorn

from tackboard import config


def run() -> None:
    uvicorn.run(
        "tackboard.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.ENVIRONMENT == "development",
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
