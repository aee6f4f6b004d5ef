import os

import uvicorn


def _truthy(value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"}


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = _truthy(os.getenv("RELOAD", "false"))
    log_level = os.getenv("LOG_LEVEL", "info")
    forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")

    # Handlers are sync; uvicorn runs them on its thread pool, one session each.
    uvicorn.run(
        "erpdb.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level=log_level,
        proxy_headers=True,
        forwarded_allow_ips=forwarded_allow_ips,
    )


if __name__ == "__main__":
    main()
