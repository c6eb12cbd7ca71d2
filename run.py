import os

from code_reviewer.logger import get_logger


def main() -> None:
    host = "0.0.0.0"
    port = int(os.getenv("PORT", "8000"))
    display_url = f"http://localhost:{port}"

    get_logger().info(
        "Starting AI Code Reviewer on {display_url} (binding to {host}:{port})",
        display_url=display_url,
        host=host,
        port=port,
    )

    import uvicorn

    uvicorn.run(
        app="code_reviewer.main:app",
        host=host,
        port=port,
        workers=1,
        log_level=os.getenv("APP_LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
