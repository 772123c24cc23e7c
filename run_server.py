import os

import uvicorn

from outdoor_planner.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


if __name__ == "__main__":
    setup_logging(job_name="outdoor-planner", level=settings.log_level)
    logger.info("Starting server", extra={"forecast_source": settings.forecast_source})

    uvicorn.run(
        "outdoor_planner.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
