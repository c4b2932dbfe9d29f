import csv
import io
from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel as PydanticBaseModel, Field, ValidationError
from sqlalchemy import func
from sqlmodel import Session, select

from app.api.common import pagination
from app.auth.dependencies import get_current_tenant, require_permission
from app.db.session import get_session
from app.lib.cache import cache
from app.model.base import utc_now
from app.model.inventory import AdjustmentType, InventoryHistory
from app.model.membership import Membership
from app.model.product import Product, ProductStatus, ProductVariant
from app.model.tenant import Tenant
from app.services.inventory_service import adjust_stock, sync_all_product_stocks
from app.services.tenant_service import get_low_stock_threshold

router = APIRouter(prefix="/inventory", tags=["Inventory"])


class AdjustRequest(PydanticBaseModel):
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    adjustment_type: AdjustmentType
    quantity: int = Field(ge=0)
    reason: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None


class HistoryResponse(PydanticBaseModel):
    id: int
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    adjustment_type: AdjustmentType
    quantity_before: int
    quantity_after: int
    quantity_change: int
    reason: Optional[str] = None
    notes: Optional[str] = None
    adjusted_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BulkRow(PydanticBaseModel):
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    adjustment_type: Literal["increase", "decrease", "set"]
    quantity: int = Field(ge=0)
    reason: Optional[str] = Field(default=None, max_length=255)


class BulkRequest(PydanticBaseModel):
    adjustments: list[BulkRow] = Field(min_length=1, max_length=500)


class BulkRowResult(PydanticBaseModel):
    index: int
    success: bool
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    quantity_after: Optional[int] = None
    error: Optional[str] = None


class BulkResponse(PydanticBaseModel):
    processed: int
    succeeded: int
    failed: int
    results: list[BulkRowResult]


class HistoryListResponse(PydanticBaseModel):
    items: list[HistoryResponse]
    pagination: dict[str, Any]


class StockAlert(PydanticBaseModel):
    product_id: int
    variant_id: Optional[int] = None
    name: str
    sku: Optional[str] = None
    stock_quantity: int
    out_of_stock: bool


class AlertsResponse(PydanticBaseModel):
    threshold: int
    products: list[StockAlert]
    variants: list[StockAlert]


class InventorySettings(PydanticBaseModel):
    low_stock_threshold: int = Field(ge=0, le=100000)


@router.post("/adjust", response_model=HistoryResponse, status_code=201)
def adjust_inventory(
    body: AdjustRequest,
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    history = adjust_stock(
        session,
        tenant_id=membership.tenant_id,
        adjustment_type=body.adjustment_type,
        quantity=body.quantity,
        product_id=body.product_id,
        variant_id=body.variant_id,
        reason=body.reason,
        notes=body.notes,
        adjusted_by=membership.account_id,
    )
    session.commit()
    session.refresh(history)
    cache.clear_tenant(membership.tenant_id)
    return history


@router.post("/bulk", response_model=BulkResponse)
def bulk_adjust_inventory(
    body: BulkRequest,
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    """Aplica vários ajustes; cada linha tem seu próprio resultado e erros não abortam as demais."""
    results: list[BulkRowResult] = []
    for index, row in enumerate(body.adjustments):
        try:
            history = adjust_stock(
                session,
                tenant_id=membership.tenant_id,
                adjustment_type=AdjustmentType(row.adjustment_type),
                quantity=row.quantity,
                product_id=row.product_id,
                variant_id=row.variant_id,
                reason=row.reason or "bulk update",
                adjusted_by=membership.account_id,
            )
        except HTTPException as e:
            results.append(
                BulkRowResult(
                    index=index,
                    success=False,
                    product_id=row.product_id,
                    variant_id=row.variant_id,
                    error=str(e.detail),
                )
            )
            continue
        results.append(
            BulkRowResult(
                index=index,
                success=True,
                product_id=history.product_id,
                variant_id=history.variant_id,
                quantity_after=history.quantity_after,
            )
        )
    session.commit()
    cache.clear_tenant(membership.tenant_id)
    succeeded = sum(1 for r in results if r.success)
    return BulkResponse(
        processed=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=results,
    )


@router.get("/history", response_model=HistoryListResponse)
def inventory_history(
    product_id: Optional[int] = None,
    variant_id: Optional[int] = None,
    adjustment_type: Optional[AdjustmentType] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    conditions = [InventoryHistory.tenant_id == membership.tenant_id]
    if product_id is not None:
        conditions.append(InventoryHistory.product_id == product_id)
    if variant_id is not None:
        conditions.append(InventoryHistory.variant_id == variant_id)
    if adjustment_type is not None:
        conditions.append(InventoryHistory.adjustment_type == adjustment_type)

    total = session.exec(select(func.count(InventoryHistory.id)).where(*conditions)).one()
    rows = session.exec(
        select(InventoryHistory)
        .where(*conditions)
        .order_by(InventoryHistory.created_at.desc(), InventoryHistory.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return HistoryListResponse(
        items=[HistoryResponse.model_validate(r) for r in rows],
        pagination=pagination(total, page, limit),
    )


@router.get("/alerts", response_model=AlertsResponse)
def stock_alerts(
    membership: Membership = Depends(require_permission("products.read")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    """Produtos e variantes com estoque <= limite de estoque baixo da loja."""
    threshold = get_low_stock_threshold(tenant)
    products = session.exec(
        select(Product)
        .where(
            Product.tenant_id == tenant.id,
            Product.status != ProductStatus.ARCHIVED,
            Product.stock_quantity <= threshold,
        )
        .order_by(Product.stock_quantity, Product.name)
    ).all()
    variants = session.exec(
        select(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
        .where(
            ProductVariant.tenant_id == tenant.id,
            Product.status != ProductStatus.ARCHIVED,
            ProductVariant.stock_quantity <= threshold,
        )
        .order_by(ProductVariant.stock_quantity, Product.name)
    ).all()
    return AlertsResponse(
        threshold=threshold,
        products=[
            StockAlert(
                product_id=p.id,
                name=p.name,
                sku=p.sku,
                stock_quantity=p.stock_quantity,
                out_of_stock=p.stock_quantity == 0,
            )
            for p in products
        ],
        variants=[
            StockAlert(
                product_id=p.id,
                variant_id=v.id,
                name=f"{p.name} ({v.name})",
                sku=v.sku,
                stock_quantity=v.stock_quantity,
                out_of_stock=v.stock_quantity == 0,
            )
            for v, p in variants
        ],
    )


@router.get("/settings", response_model=InventorySettings)
def get_inventory_settings(
    membership: Membership = Depends(require_permission("settings.read")),
    tenant: Tenant = Depends(get_current_tenant),
):
    return InventorySettings(low_stock_threshold=get_low_stock_threshold(tenant))


@router.put("/settings", response_model=InventorySettings)
def update_inventory_settings(
    body: InventorySettings,
    membership: Membership = Depends(require_permission("settings.update")),
    tenant: Tenant = Depends(get_current_tenant),
    session: Session = Depends(get_session),
):
    # JSON column: reatribuir o dict para o SQLAlchemy detectar a mudança
    tenant.data = {**(tenant.data or {}), "low_stock_threshold": body.low_stock_threshold}
    tenant.updated_at = utc_now()
    session.add(tenant)
    session.commit()
    cache.clear_tenant(tenant.id)
    return body


@router.post("/sync")
def sync_inventory(
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    """Reconcilia agora o estoque de todos os produtos com variantes da loja."""
    result = sync_all_product_stocks(session, tenant_id=membership.tenant_id)
    session.commit()
    cache.clear_tenant(membership.tenant_id)
    return result.as_dict()


# ---------------------------------------------------------------------------
# Planilha (CSV) de ajustes em massa
# ---------------------------------------------------------------------------

CSV_HEADERS = ["Type", "SKU", "Adjustment Type", "Quantity", "Reason"]
REQUIRED_CSV_HEADERS = ("type", "sku", "adjustment type", "quantity")
TEMPLATE_SAMPLE_SIZE = 5


class CsvRow(PydanticBaseModel):
    """Uma linha da planilha, já normalizada."""

    type: Literal["product", "variant"]
    sku: str = Field(min_length=1)
    adjustment_type: Literal["increase", "decrease", "set"]
    quantity: int = Field(ge=0)
    reason: Optional[str] = Field(default=None, max_length=255)


class CsvError(PydanticBaseModel):
    row: int
    sku: Optional[str] = None
    error: str


class CsvImportSummary(PydanticBaseModel):
    total_rows: int
    valid_updates: int
    parse_errors: int
    resolution_errors: int


class CsvImportResponse(PydanticBaseModel):
    message: str
    updates: list[BulkRow]
    errors: list[CsvError]
    summary: CsvImportSummary


@router.get("/bulk/template")
def bulk_template(
    membership: Membership = Depends(require_permission("products.read")),
    session: Session = Depends(get_session),
):
    """Modelo CSV preenchido com alguns produtos e variantes da loja."""
    products = session.exec(
        select(Product)
        .where(
            Product.tenant_id == membership.tenant_id,
            Product.status.in_((ProductStatus.ACTIVE, ProductStatus.DRAFT)),
        )
        .order_by(Product.id)
        .limit(TEMPLATE_SAMPLE_SIZE)
    ).all()
    variants = session.exec(
        select(ProductVariant)
        .where(ProductVariant.tenant_id == membership.tenant_id)
        .order_by(ProductVariant.id)
        .limit(TEMPLATE_SAMPLE_SIZE)
    ).all()

    buffer = io.StringIO()
    buffer.write("\ufeff")
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for p in products:
        writer.writerow(["product", p.sku or p.id, "set", 10, "restock"])
    for v in variants:
        writer.writerow(["variant", v.sku or v.id, "increase", 5, "manual_adjustment"])
    buffer.seek(0)
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="inventory-template.csv"'},
    )


def _parse_csv_row(raw: dict[str, str]) -> CsvRow:
    adjustment = (raw.get("adjustment type") or "").strip().lower()
    if adjustment == "reduce":
        adjustment = "decrease"
    return CsvRow(
        type=(raw.get("type") or "").strip().lower(),
        sku=(raw.get("sku") or "").strip(),
        adjustment_type=adjustment,
        quantity=(raw.get("quantity") or "").strip(),
        reason=(raw.get("reason") or "").strip() or None,
    )


def _resolve_csv_row(session: Session, tenant_id: int, row: CsvRow) -> Optional[BulkRow]:
    """SKU (ou id numérico) -> linha pronta para POST /inventory/bulk (um único alvo); None se não achar."""
    model = Product if row.type == "product" else ProductVariant
    conditions = [model.tenant_id == tenant_id, model.sku == row.sku]
    obj = session.exec(select(model).where(*conditions)).first()
    if obj is None and row.sku.isdigit():
        obj = session.get(model, int(row.sku))
        if obj is not None and obj.tenant_id != tenant_id:
            obj = None
    if obj is None:
        return None
    return BulkRow(
        product_id=obj.id if row.type == "product" else None,
        variant_id=obj.id if row.type == "variant" else None,
        adjustment_type=row.adjustment_type,
        quantity=row.quantity,
        reason=row.reason or "bulk import",
    )


def _validation_message(e: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())


@router.post("/bulk/import", response_model=CsvImportResponse)
async def bulk_import(
    file: Optional[UploadFile] = File(None),
    membership: Membership = Depends(require_permission("products.update")),
    session: Session = Depends(get_session),
):
    """
    Lê a planilha e devolve os ajustes resolvidos, sem aplicar.

    As linhas em `updates` vão no corpo de POST /inventory/bulk; `errors`
    lista o que não pôde ser lido ou encontrado (linha 1 é o cabeçalho).
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    if not file.filename.lower().endswith(".csv") and file.content_type not in ("text/csv", "application/vnd.ms-excel"):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    content = (await file.read()).decode("utf-8-sig", errors="replace")
    lines = [line for line in content.splitlines() if line.strip()]
    if len(lines) < 2:
        raise HTTPException(status_code=400, detail="CSV must have a header row and at least one data row")

    reader = csv.reader(lines)
    headers = [h.strip().lower() for h in next(reader)]
    missing = [h for h in REQUIRED_CSV_HEADERS if h not in headers]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required headers: {', '.join(missing)}")

    updates: list[BulkRow] = []
    errors: list[CsvError] = []
    parse_errors = resolution_errors = 0
    total_rows = 0
    for line_number, values in enumerate(reader, start=2):
        total_rows += 1
        raw = dict(zip(headers, values))
        try:
            row = _parse_csv_row(raw)
        except ValidationError as e:
            parse_errors += 1
            errors.append(CsvError(row=line_number, sku=(raw.get("sku") or "").strip() or None, error=_validation_message(e)))
            continue
        update = _resolve_csv_row(session, membership.tenant_id, row)
        if update is None:
            resolution_errors += 1
            errors.append(CsvError(row=line_number, sku=row.sku, error=f"{row.type.capitalize()} not found"))
            continue
        updates.append(update)

    if not updates:
        raise HTTPException(status_code=400, detail="No valid rows found in CSV")

    return CsvImportResponse(
        message=f"Parsed {len(updates)} valid update(s) from {total_rows} row(s)",
        updates=updates,
        errors=errors,
        summary=CsvImportSummary(
            total_rows=total_rows,
            valid_updates=len(updates),
            parse_errors=parse_errors,
            resolution_errors=resolution_errors,
        ),
    )
