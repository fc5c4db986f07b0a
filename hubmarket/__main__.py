"""Run the API server with uvicorn."""

import uvicorn

from hubmarket.config import server_config
from hubmarket.database import init_db

def main():
    init_db()
    uvicorn.run(
        "hubmarket.main:build_default_app",
        factory=True,
        host=server_config.host,
        port=server_config.port,
        reload=server_config.debug,
    )

if __name__ == "__main__":
    main()
