import logging
import os
from fastapi import FastAPI
from .processing import SubmissionJobs
from .capture.api import router as capture_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="InkTrace Capture Service")
app.include_router(capture_router)
app.state.jobs = SubmissionJobs()


@app.get("/health")
def health():
    return {"status": "ok"}

# For local dev:
#   uvicorn inktrace.main:app --reload --app-dir services/inktrace-api
