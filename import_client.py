"""
Client side of the import: submits the active sheet of an edit session.

One request at a time, no retry, no cancellation and no timeout beyond the
transport's own.
"""
import logging
from typing import Optional

import httpx
from fastapi.encoders import jsonable_encoder

from config import config
from edit_session import EditSession
from schemas import ImportStatus

logger = logging.getLogger(__name__)

IMPORT_PATH = "/api/import"


class SubmissionInProgressError(RuntimeError):
    """A submission is already waiting for the server."""


class ImportSubmitter:
    """
    Posts ``{data, sheetName}`` for the active sheet to the import endpoint.

    Args:
        base_url: Server root, defaults to the configured IMPORT_API_URL
        client: Optional httpx.Client to reuse (tests pass one with a mock transport)
    """

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.Client] = None):
        self.base_url = (base_url or config.IMPORT_API_URL).rstrip("/")
        self.client = client or httpx.Client(base_url=self.base_url, timeout=None)
        self.is_submitting = False
        self.last_status: Optional[ImportStatus] = None

    def build_payload(self, session: EditSession) -> dict:
        sheet = session.active_sheet
        return {
            "data": jsonable_encoder(sheet.rows),
            "sheetName": sheet.name,
        }

    def submit(self, session: EditSession) -> Optional[ImportStatus]:
        """
        Submit the active sheet's current rows.

        Returns:
            ImportStatus describing the outcome, or None when there is nothing to submit

        Raises:
            SubmissionInProgressError: If a previous submission has not finished
        """
        if self.is_submitting:
            raise SubmissionInProgressError("An import is already in progress")
        if not session.rows:
            return None

        payload = self.build_payload(session)
        self.is_submitting = True
        logger.info(
            "Submitting sheet for import",
            extra={"sheet": payload["sheetName"], "row_count": len(payload["data"])}
        )
        try:
            response = self.client.post(IMPORT_PATH, json=payload)
            try:
                result = response.json()
            except ValueError:
                result = {"message": response.text or response.reason_phrase}
            if not isinstance(result, dict):
                result = {"message": response.reason_phrase}

            status = ImportStatus(
                success=response.is_success,
                message=result.get("message", ""),
                importedCount=result.get("importedCount"),
                skippedCount=result.get("skippedCount"),
                errors=result.get("errors"),
            )
            if not status.success:
                logger.warning(
                    f"Import rejected: {status.message}",
                    extra={"status_code": response.status_code, "sheet": payload["sheetName"]}
                )
        except httpx.HTTPError as e:
            logger.error(f"Import request failed: {e}", extra={"sheet": payload["sheetName"]})
            status = ImportStatus(success=False, message=str(e))
        finally:
            self.is_submitting = False

        self.last_status = status
        return status

    def close(self) -> None:
        self.client.close()
