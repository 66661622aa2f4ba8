"""API server entry point for python -m ytstudio.api"""
import uvicorn
from ytstudio.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "ytstudio.api.app:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
