from __future__ import annotations

import uvicorn

from .db import init_db
from .settings import get_setting


def main() -> None:
    init_db()

    from .app import create_app

    host = get_setting("bind_host").strip() or "127.0.0.1"
    try:
        port = int(get_setting("bind_port").strip() or "2590")
    except ValueError:
        port = 2590

    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
