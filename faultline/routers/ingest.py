"""
Ingest endpoints called by client applications.

The project id and public key are embedded in the path
(/ingest/{project_id}:{key}/errors). Key verification happens upstream;
the project id is attached to the event as-is.
"""
import logging
from fastapi import APIRouter, Request, status
from faultline.kinds import ERRORS, LOGS
from faultline.schemas import ErrorCreate, ErrorResponse, LogCreate, LogResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingest"])


@router.post("/{project_id}:{key}/errors", response_model=ErrorResponse, status_code=status.HTTP_201_CREATED)
async def ingest_error(project_id: str, key: str, payload: ErrorCreate, request: Request):
    """
    Record an error and bump its group.
    """
    service = request.app.state.ingestion[ERRORS.name]
    entity = await service.create(project_id, payload)
    logger.info(f"Ingested error {entity.id} for project {project_id}")
    return entity


@router.post("/{project_id}:{key}/logs", response_model=LogResponse, status_code=status.HTTP_201_CREATED)
async def ingest_log(project_id: str, key: str, payload: LogCreate, request: Request):
    """
    Record a log and bump its group.
    """
    service = request.app.state.ingestion[LOGS.name]
    entity = await service.create(project_id, payload)
    logger.info(f"Ingested {entity.level} log {entity.id} for project {project_id}")
    return entity
