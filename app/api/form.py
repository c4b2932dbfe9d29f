import re
from datetime import date, datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel as PydanticBaseModel, Field, field_validator
from sqlalchemy import delete, func
from sqlmodel import Session, select

from app.api.common import get_owned_or_404, normalize_email, pagination
from app.auth.dependencies import require_permission
from app.db.session import get_session
from app.lib.slug import generate_slug, unique_slug
from app.model.base import utc_now
from app.model.form import Form, FormStatus, FormSubmission
from app.model.membership import Membership

router = APIRouter(prefix="/forms", tags=["Forms"])

FieldType = Literal["text", "email", "tel", "number", "textarea", "select", "checkbox", "radio", "date", "file", "url"]

_OPTION_TYPES = {"select", "radio", "checkbox"}
_URL_PATTERN = re.compile(r"^https?://\S+$")


class FormField(PydanticBaseModel):
    id: str = Field(min_length=1, max_length=100)
    type: FieldType = "text"
    label: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=100)
    placeholder: Optional[str] = None
    required: bool = False
    options: Optional[list[str]] = None
    validation: Optional[dict[str, Any]] = None
    order: int = 0

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not re.match(r"^[A-Za-z_][A-Za-z0-9_-]*$", v):
            raise ValueError("name must start with a letter or underscore and contain only letters, digits, _ or -")
        return v


def _check_fields(fields: list[FormField]) -> list[FormField]:
    names = [f.name for f in fields]
    if len(names) != len(set(names)):
        raise ValueError("field names must be unique")
    for f in fields:
        if f.type in ("select", "radio") and not f.options:
            raise ValueError(f"field '{f.name}' of type {f.type} needs options")
    return sorted(fields, key=lambda f: f.order)


class FormCreate(PydanticBaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    email: Optional[str] = None
    button_text: str = Field(default="Submit", max_length=100)
    fields: list[FormField] = []
    success_message: Optional[str] = None
    status: FormStatus = FormStatus.ACTIVE

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v else None

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: list[FormField]) -> list[FormField]:
        return _check_fields(v)


class FormUpdate(PydanticBaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    email: Optional[str] = None
    button_text: Optional[str] = Field(default=None, max_length=100)
    fields: Optional[list[FormField]] = None
    success_message: Optional[str] = None
    status: Optional[FormStatus] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v else None

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: Optional[list[FormField]]) -> Optional[list[FormField]]:
        return _check_fields(v) if v is not None else None


class FormResponse(PydanticBaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    email: Optional[str] = None
    button_text: str
    fields: list[dict[str, Any]] = []
    success_message: Optional[str] = None
    status: FormStatus
    created_at: datetime
    updated_at: datetime

    @field_validator("fields", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []

    class Config:
        from_attributes = True


class SubmissionResponse(PydanticBaseModel):
    id: int
    form_id: int
    data: Optional[dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SubmissionListResponse(PydanticBaseModel):
    items: list[SubmissionResponse]
    pagination: dict[str, Any]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == [] or value is False


def validate_submission(fields: list[dict[str, Any]], data: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """
    Valida os dados enviados contra a definição dos campos.

    Retorna (dados_limpos, erros_por_campo). Campos desconhecidos são descartados.
    """
    clean: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for raw in sorted(fields or [], key=lambda f: f.get("order", 0)):
        field = FormField.model_validate(raw)
        value = data.get(field.name)
        if _is_blank(value):
            if field.required:
                errors[field.name] = f"{field.label} is required"
            continue

        if field.type in _OPTION_TYPES and field.options:
            chosen = value if isinstance(value, list) else [value]
            invalid = [v for v in chosen if str(v) not in field.options]
            if invalid:
                errors[field.name] = f"{field.label} has an invalid option"
                continue
        elif field.type == "email":
            try:
                value = normalize_email(str(value))
            except ValueError:
                errors[field.name] = f"{field.label} must be a valid email"
                continue
        elif field.type == "number":
            try:
                value = float(value)
            except (TypeError, ValueError):
                errors[field.name] = f"{field.label} must be a number"
                continue
        elif field.type == "date":
            try:
                value = date.fromisoformat(str(value)).isoformat()
            except ValueError:
                errors[field.name] = f"{field.label} must be a date (YYYY-MM-DD)"
                continue
        elif field.type == "url" and not _URL_PATTERN.match(str(value)):
            errors[field.name] = f"{field.label} must be a valid URL"
            continue

        rules = field.validation or {}
        if isinstance(value, str):
            if rules.get("min_length") and len(value) < int(rules["min_length"]):
                errors[field.name] = f"{field.label} must have at least {rules['min_length']} characters"
                continue
            if rules.get("max_length") and len(value) > int(rules["max_length"]):
                errors[field.name] = f"{field.label} must have at most {rules['max_length']} characters"
                continue
            if rules.get("pattern") and not re.fullmatch(rules["pattern"], value):
                errors[field.name] = f"{field.label} has an invalid format"
                continue
        clean[field.name] = value
    return clean, errors


def _form_slug(session: Session, tenant_id: int, wanted: str, exclude_id: int | None = None) -> str:
    taken = set(
        session.exec(select(Form.slug).where(Form.tenant_id == tenant_id, Form.id != (exclude_id or 0))).all()
    )
    return unique_slug(generate_slug(wanted), taken)


@router.get("", response_model=list[FormResponse])
def list_forms(
    status: Optional[FormStatus] = None,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    query = select(Form).where(Form.tenant_id == membership.tenant_id)
    if status:
        query = query.where(Form.status == status)
    return session.exec(query.order_by(Form.created_at.desc())).all()


@router.post("", response_model=FormResponse, status_code=201)
def create_form(
    body: FormCreate,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    form = Form(
        tenant_id=membership.tenant_id,
        title=body.title.strip(),
        slug=_form_slug(session, membership.tenant_id, body.slug or body.title),
        description=body.description,
        email=body.email,
        button_text=body.button_text,
        fields=[f.model_dump() for f in body.fields],
        success_message=body.success_message,
        status=body.status,
    )
    session.add(form)
    session.commit()
    session.refresh(form)
    return form


@router.get("/{form_id}", response_model=FormResponse)
def get_form(
    form_id: int,
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    return get_owned_or_404(session, Form, form_id, membership.tenant_id, "Form")


@router.put("/{form_id}", response_model=FormResponse)
def update_form(
    form_id: int,
    body: FormUpdate,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    form = get_owned_or_404(session, Form, form_id, membership.tenant_id, "Form")
    data = body.model_dump(exclude_unset=True)
    if data.get("slug"):
        form.slug = _form_slug(session, membership.tenant_id, data["slug"], exclude_id=form.id)
    if data.get("title"):
        form.title = data["title"].strip()
    if body.fields is not None:
        form.fields = [f.model_dump() for f in body.fields]
    for key in ("description", "email", "success_message"):
        if key in data:
            setattr(form, key, data[key])
    if data.get("button_text"):
        form.button_text = data["button_text"]
    if data.get("status"):
        form.status = data["status"]
    form.updated_at = utc_now()
    session.add(form)
    session.commit()
    session.refresh(form)
    return form


@router.delete("/{form_id}", status_code=204)
def delete_form(
    form_id: int,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    form = get_owned_or_404(session, Form, form_id, membership.tenant_id, "Form")
    session.exec(delete(FormSubmission).where(FormSubmission.form_id == form.id))
    session.delete(form)
    session.commit()
    return Response(status_code=204)


@router.get("/{form_id}/submissions", response_model=SubmissionListResponse)
def list_submissions(
    form_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    membership: Membership = Depends(require_permission("settings.read")),
    session: Session = Depends(get_session),
):
    form = get_owned_or_404(session, Form, form_id, membership.tenant_id, "Form")
    conditions = [FormSubmission.form_id == form.id, FormSubmission.tenant_id == membership.tenant_id]
    total = session.exec(select(func.count(FormSubmission.id)).where(*conditions)).one()
    rows = session.exec(
        select(FormSubmission)
        .where(*conditions)
        .order_by(FormSubmission.created_at.desc(), FormSubmission.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return SubmissionListResponse(
        items=[SubmissionResponse.model_validate(r) for r in rows],
        pagination=pagination(total, page, limit),
    )


@router.delete("/{form_id}/submissions/{submission_id}", status_code=204)
def delete_submission(
    form_id: int,
    submission_id: int,
    membership: Membership = Depends(require_permission("settings.update")),
    session: Session = Depends(get_session),
):
    submission = get_owned_or_404(session, FormSubmission, submission_id, membership.tenant_id, "Submission")
    if submission.form_id != form_id:
        raise HTTPException(status_code=404, detail="Submission not found")
    session.delete(submission)
    session.commit()
    return Response(status_code=204)
