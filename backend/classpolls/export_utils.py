# classpolls/export_utils.py
import io
from datetime import datetime

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from classpolls import config
from classpolls.report_writer import write_report

router = APIRouter()


@router.get("/api/allocations.csv")
def export_report(request: Request):
    """Download every record of the current session as CSV, newest first."""
    records = request.app.state.store.query(config.SESSION_ID)

    buffer = io.StringIO()
    write_report(records, config.CATEGORY_LABELS, buffer)
    buffer.seek(0)

    # create download filename with timestamp
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    filename = f"{config.SESSION_ID}_allocations_{ts}.csv"
    return StreamingResponse(
        buffer,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
