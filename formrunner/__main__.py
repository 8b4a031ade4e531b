"""Serve the runtime API: ``python -m formrunner``.

Equivalent to ``uvicorn formrunner.main:create_app --factory``; host and
port come from FORMRUNNER_HOST / FORMRUNNER_PORT.
"""

from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "formrunner.main:create_app",
        factory=True,
        host=os.environ.get("FORMRUNNER_HOST", "127.0.0.1"),
        port=int(os.environ.get("FORMRUNNER_PORT", "8000")),
        log_level=os.environ.get("FORMRUNNER_LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
