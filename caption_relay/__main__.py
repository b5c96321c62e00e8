"""Run the server: python -m caption_relay"""
import uvicorn

from caption_relay.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("caption_relay.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
