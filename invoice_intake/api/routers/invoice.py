from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from loguru import logger

from ..deps import get_event_publisher, get_processor, get_store
from ...core.config import settings
from ...core.errors import DuplicateKeyError, ValidationError
from ...models.invoice import InvoiceUpdate
from ...services.events.event_publisher import EventPublisher
from ...services.line_items import default_line_item
from ...services.normalizer import validate_invoice
from ...services.pipeline import InvoiceProcessor
from ...services.storage.invoice_store_base import InvoiceStoreBase

router = APIRouter(prefix="/invoices", tags=["invoices"])

ERROR_STATUS_CODES = {
    "NotAnInvoice": 422,
    "ValidationError": 422,
    "DuplicateInvoice": 409,
    "ExtractionParseError": 502,
    "ExtractionFailed": 502,
    "PersistenceError": 500,
    "InternalError": 500,
}


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


@router.post("/process")
async def process_invoice(
    request: Request,
    file: UploadFile = File(None),
    update_if_exists: bool = False,
    file_name: str | None = None,
    processor: InvoiceProcessor = Depends(get_processor),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    """
    Extract, normalize and store an invoice document.

    Accepts either:
    - multipart/form-data (file upload via form)
    - application/pdf, image/jpeg or image/png (raw binary body, name via ?file_name=)

    With ``update_if_exists=true`` an invoice with the same invoice number and
    vendor is updated in place; otherwise it is reported as a duplicate (409).

    The response body is always a processing result:
    {"success": true, "message": "...", "invoice": {...}}
    {"success": false, "error": "...", "code": "...", "details": ...}
    """
    if file:
        # Multipart form-data upload
        content = await file.read()
        mime_type = file.content_type or ""
        name = file.filename or file_name or "upload"
    else:
        # Raw binary body
        content = await request.body()
        if not content:
            raise HTTPException(status_code=422, detail="No file provided (either multipart or raw body)")
        mime_type = request.headers.get("content-type", "").split(";")[0].strip()
        name = file_name or "upload"

    if mime_type not in settings.allowed_mime_type_list:
        logger.warning("Rejected upload with unsupported type", mime_type=mime_type, file_name=name)
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PDF, JPEG, and PNG files are supported.",
        )

    result = await processor.process(
        content,
        mime_type,
        name,
        update_if_exists=update_if_exists,
        progress=publisher.progress_sink,
    )

    status_code = 200 if result.success else ERROR_STATUS_CODES.get(result.code, 400)
    return JSONResponse(status_code=status_code, content=_dump(result))


@router.get("")
async def list_invoices(store: InvoiceStoreBase = Depends(get_store)):
    """List all stored invoices with their line items, newest first"""
    invoices = store.list_all()
    return {"total": len(invoices), "invoices": [_dump(invoice) for invoice in invoices]}


@router.get("/{invoice_id}")
async def get_invoice(invoice_id: str, store: InvoiceStoreBase = Depends(get_store)):
    invoice = store.get(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return _dump(invoice)


@router.put("/{invoice_id}")
async def update_invoice(
    invoice_id: str,
    body: InvoiceUpdate,
    recalculate_amount: bool = False,
    store: InvoiceStoreBase = Depends(get_store),
):
    """
    Edit a stored invoice.

    Scalar fields are replaced; when ``lineItems`` is present the stored line
    items are replaced wholesale (an empty list leaves a single "Invoice total"
    item carrying the amount). With ``recalculate_amount=true`` the amount
    is set to the sum of the submitted line-item totals.
    """
    if not store.get(invoice_id):
        raise HTTPException(status_code=404, detail="Invoice not found")

    data = body.model_dump(by_alias=True)
    if recalculate_amount and body.line_items:
        data["amount"] = round(sum(item.total for item in body.line_items), 2)
    if body.line_items is None:
        data.pop("lineItems")

    try:
        candidate = validate_invoice(data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"error": e.error, "details": e.details})

    try:
        store.update(invoice_id, candidate.scalar_fields())
        if body.line_items is not None:
            # An invoice always keeps at least one line item
            items = candidate.line_items or [default_line_item(candidate.amount)]
            store.replace_line_items(invoice_id, items)
    except DuplicateKeyError as e:
        raise HTTPException(status_code=409, detail=e.error)
    except Exception as e:
        logger.error(f"Failed to update invoice {invoice_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update invoice")

    logger.info("Invoice edited", invoice_id=invoice_id, recalculated=recalculate_amount)
    return {"success": True, "invoice": _dump(store.get(invoice_id))}


@router.delete("/{invoice_id}")
async def delete_invoice(invoice_id: str, store: InvoiceStoreBase = Depends(get_store)):
    """Delete an invoice and its line items"""
    try:
        deleted = store.delete(invoice_id)
    except Exception as e:
        logger.error(f"Failed to delete invoice {invoice_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete invoice")

    if not deleted:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return {"success": True}
