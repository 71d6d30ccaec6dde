"""
Question Tree API Entry Point

Use this file for deployment:
  uvicorn main:app --host 0.0.0.0 --port $PORT
"""

import logging
import os

from app.questions.config import QuestionsConfig

config = QuestionsConfig.from_env()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

from api_server import create_app  # noqa: E402

app = create_app(config=config)


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
