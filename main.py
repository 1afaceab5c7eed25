from fastapi import FastAPI, status, Depends, File, Query, Request, UploadFile
import os
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Optional, Tuple
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from config import config
from import_service import ImportService, RequestFormatError, INVALID_REQUEST_MESSAGE
from record_store import RecordStore, get_database, get_session
from schemas import ErrorResponse, SheetPreview, UploadResponse
from sheet_processor import SheetProcessor
from spreadsheet_decoder import check_upload


# Create logs directory if it doesn't exist
log_dir = config.LOG_DIR
if not os.path.isabs(log_dir):
    log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), log_dir)
os.makedirs(log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)


def get_reference_date() -> date:
    """
    Date against which "current month" is evaluated on the server.

    Declared as a dependency so it can be pinned with ``app.dependency_overrides``.
    """
    return date.today()


@asynccontextmanager
async def lifespan(app: FastAPI):
    database = get_database()
    # A failed bootstrap is logged by init() and does not stop the server
    if not database.init():
        logger.error("Starting without a database connection")
    yield
    database.close()
    logger.info("Database connection closed")


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Excel Data Importer API",
    description="API for previewing, validating and importing Excel sheets",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Something went wrong!"},
    )


async def read_upload(file: UploadFile, max_bytes: Optional[int] = None) -> Tuple[bytes, int]:
    """
    Read an upload without buffering more than one byte past the size limit.

    Returns the content read and the size to check. When the declared size is
    already over the limit nothing is read and the content is empty.
    """
    limit = config.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    if file.size is not None and file.size > limit:
        return b"", file.size
    content = await file.read(limit + 1)
    return content, len(content)


# API Endpoints
@app.post(
    "/api/upload",
    tags=["Excel Processing"],
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
    },
)
async def upload_workbook(
    file: UploadFile = File(...),
    reference_date: date = Depends(get_reference_date),
):
    """
    Decode and validate an uploaded workbook for preview.

    The file must be a single .xlsx/.xls workbook of at most 2 MiB. Every sheet
    is returned with its rows, its table columns and its validation errors.

    Returns:
        UploadResponse: sheets, the active sheet index and the errors to show
        immediately (those of the first sheet that has any)
    """
    content, size = await read_upload(file)
    logger.info(f"Received upload {file.filename}", extra={"size": size, "content_type": file.content_type})

    result = check_upload(file.filename, file.content_type, size).and_then(
        lambda _: SheetProcessor.process_upload(content, reference_date)
    )
    if result.is_failure():
        return JSONResponse(status_code=result.status_code.value, content={"message": result.error})

    workbook = result.data
    return UploadResponse(
        sheets=[
            SheetPreview(
                name=sheet.name,
                columns=list(sheet.rows[0].keys()) if sheet.rows else [],
                rows=sheet.rows,
                errors=sheet.errors,
            )
            for sheet in workbook.sheets
        ],
        activeSheet=workbook.active_sheet_index,
        errors=workbook.errors_to_surface,
    )


@app.post(
    "/api/import",
    tags=["Import"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def import_rows(
    request: Request,
    session: Session = Depends(get_session),
    reference_date: date = Depends(get_reference_date),
):
    """
    Re-validate and persist the rows of one sheet.

    Body: ``{"data": [row, ...], "sheetName": "..."}``

    Returns:
        dict: message, importedCount, skippedCount and, when any row failed to
        persist, the list of error messages
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Import request body is not valid JSON")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": INVALID_REQUEST_MESSAGE})

    if not isinstance(payload, dict):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": INVALID_REQUEST_MESSAGE})

    try:
        summary = ImportService(session).import_rows(
            payload.get("data"), payload.get("sheetName"), reference_date
        )
    except RequestFormatError as e:
        logger.warning(f"Rejected import request: {e}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(e)})
    except Exception as e:
        logger.exception(f"Import error: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Failed to import data", "error": str(e)},
        )

    return summary.to_response()


@app.get(
    "/api/records",
    tags=["Records"],
    responses={500: {"model": ErrorResponse}},
)
def list_records(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sheetName: Optional[str] = None,
    session: Session = Depends(get_session),
):
    """
    List imported records, newest date first.

    Returns:
        dict: records, totalPages and currentPage
    """
    try:
        record_page = RecordStore(session).list(sheet_name=sheetName, page=page, limit=limit)
    except Exception as e:
        logger.exception(f"Error fetching records: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Error fetching records", "error": str(e)},
        )
    return record_page.model_dump(mode="json")


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Excel Data Importer API in development mode.")
    uvicorn.run("main:app", host=config.APP_HOST, port=config.APP_PORT, reload=True)
