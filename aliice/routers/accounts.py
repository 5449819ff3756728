"""Account client endpoints: billing profiles, documents, ad-hoc work and SOA."""

from io import BytesIO
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.db.enums import DocumentType, SoaFormat
from aliice.schemas.account import (
    AccountClientCreate,
    AccountClientRead,
    AccountClientUpdate,
    AdhocCreate,
    AdhocRead,
    AdhocUpdate,
    DocumentRead,
)
from aliice.schemas.auth import UserSession
from aliice.services import account_service, storage_service

router = APIRouter(prefix="/accounts", tags=["accounts"])
files_router = APIRouter(prefix=storage_service.LOCAL_URL_PREFIX, tags=["accounts"])


def _get_client_or_404(db: Session, session: UserSession, client_id: UUID):
    client = account_service.get_client(db, session.org_id, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def _attachment_headers(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


# =============================================================================
# Clients
# =============================================================================

@router.get("/clients", response_model=list[AccountClientRead])
def list_clients(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return account_service.list_clients(db, session.org_id)


@router.post(
    "/clients",
    response_model=AccountClientRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_client(
    data: AccountClientCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return account_service.create_client(db, session.org_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/clients/{client_id}", response_model=AccountClientRead)
def get_client(
    client_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_client_or_404(db, session, client_id)


@router.patch(
    "/clients/{client_id}",
    response_model=AccountClientRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_client(
    client_id: UUID,
    data: AccountClientUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    try:
        return account_service.update_client(db, session.org_id, client, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/clients/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_client(
    client_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    account_service.delete_client(db, client)


# =============================================================================
# Documents
# =============================================================================

@router.get("/clients/{client_id}/documents", response_model=list[DocumentRead])
def list_documents(
    client_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    return account_service.list_documents(db, client.id)


@router.post(
    "/clients/{client_id}/documents",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_document(
    client_id: UUID,
    file: Annotated[UploadFile, File()],
    title: str | None = Form(None),
    document_type: DocumentType = Form(DocumentType.OTHER),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    content = await file.read()
    try:
        return account_service.upload_document(
            db,
            session.org_id,
            client,
            session.user_id,
            filename=file.filename or "untitled",
            content_type=file.content_type,
            file=BytesIO(content),
            file_size=len(content),
            title=title,
            document_type=document_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/clients/{client_id}/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_document(
    client_id: UUID,
    document_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    document = account_service.get_document(db, client.id, document_id)
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    account_service.delete_document(db, document)


@files_router.get("/{storage_key:path}")
def download_local_file(
    storage_key: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Serve locally stored documents (local storage backend only)."""
    document = account_service.get_document_by_storage_key(db, session.org_id, storage_key)
    if not document:
        raise HTTPException(status_code=404, detail="File not found")
    path = storage_service.local_file_path(storage_key)
    if not path:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path, media_type=document.mime_type, filename=document.file_name)


# =============================================================================
# Ad-hoc requirements
# =============================================================================

@router.get("/clients/{client_id}/adhoc", response_model=list[AdhocRead])
def list_adhoc(
    client_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    return account_service.list_adhoc(db, client.id)


@router.post(
    "/clients/{client_id}/adhoc",
    response_model=AdhocRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_adhoc(
    client_id: UUID,
    data: AdhocCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    try:
        return account_service.create_adhoc(db, client, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/clients/{client_id}/adhoc/{adhoc_id}",
    response_model=AdhocRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_adhoc(
    client_id: UUID,
    adhoc_id: UUID,
    data: AdhocUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    item = account_service.get_adhoc(db, client.id, adhoc_id)
    if not item:
        raise HTTPException(status_code=404, detail="Ad-hoc requirement not found")
    try:
        return account_service.update_adhoc(db, item, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/clients/{client_id}/adhoc/{adhoc_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_adhoc(
    client_id: UUID,
    adhoc_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = _get_client_or_404(db, session, client_id)
    item = account_service.get_adhoc(db, client.id, adhoc_id)
    if not item:
        raise HTTPException(status_code=404, detail="Ad-hoc requirement not found")
    account_service.delete_adhoc(db, item)


# =============================================================================
# Statement of account
# =============================================================================

@router.get("/clients/{client_id}/soa")
def get_statement(
    client_id: UUID,
    format: SoaFormat = SoaFormat.CSV,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> Response:
    client = _get_client_or_404(db, session, client_id)
    statement = account_service.build_statement(db, client)

    if format == SoaFormat.JSON:
        return JSONResponse(
            content=account_service.soa_json(statement),
            headers=_attachment_headers(statement.filename("json")),
        )
    if format == SoaFormat.PDF:
        return Response(
            content=account_service.soa_pdf(statement),
            media_type="application/pdf",
            headers=_attachment_headers(statement.filename("pdf")),
        )
    return Response(
        content=account_service.soa_csv(statement),
        media_type="text/csv",
        headers=_attachment_headers(statement.filename("csv")),
    )
