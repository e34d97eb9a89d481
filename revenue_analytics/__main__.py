import uvicorn

from revenue_analytics.config import settings
from revenue_analytics.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
