"""Marketing attribution endpoints: campaigns, spend, leads, metrics and exports."""

from datetime import date, datetime
from uuid import UUID

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.core.rate_limit import PUBLIC_LIMIT, limiter
from aliice.db.enums import DealStatus, MarketingChannel
from aliice.db.models import MarketingReport
from aliice.schemas.auth import UserSession
from aliice.schemas.marketing import (
    CampaignCreate,
    CampaignRead,
    CampaignUpdate,
    ExpenseCreate,
    ExpenseImportResult,
    ExpenseRead,
    ExpenseUpdate,
    LeadCreate,
    LeadRead,
    LeadUpdate,
    MetricsResponse,
    PublicLeadSubmit,
    ReportCreate,
    ReportRead,
)
from aliice.services import (
    expense_import_service,
    marketing_metrics,
    marketing_service,
    offline_export_service,
)

router = APIRouter(prefix="/marketing", tags=["marketing"])


def _get_project_or_404(db: Session, session: UserSession, project_id: UUID):
    project = marketing_service.get_project(db, session.org_id, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================================
# Campaigns
# =============================================================================

@router.get("/projects/{project_id}/campaigns", response_model=list[CampaignRead])
def list_campaigns(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    return marketing_service.list_campaigns(db, project.id)


@router.post(
    "/projects/{project_id}/campaigns",
    response_model=CampaignRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_campaign(
    project_id: UUID,
    data: CampaignCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    try:
        return marketing_service.create_campaign(db, session.org_id, project.id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/projects/{project_id}/campaigns/{campaign_id}",
    response_model=CampaignRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_campaign(
    project_id: UUID,
    campaign_id: UUID,
    data: CampaignUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    campaign = marketing_service.get_campaign(db, project.id, campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    try:
        return marketing_service.update_campaign(db, campaign, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/projects/{project_id}/campaigns/{campaign_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_campaign(
    project_id: UUID,
    campaign_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    campaign = marketing_service.get_campaign(db, project.id, campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    marketing_service.delete_campaign(db, campaign)


# =============================================================================
# Expenses
# =============================================================================

@router.get("/projects/{project_id}/expenses", response_model=list[ExpenseRead])
def list_expenses(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    return marketing_service.list_expenses(db, project.id)


@router.post(
    "/projects/{project_id}/expenses",
    response_model=ExpenseRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_expense(
    project_id: UUID,
    data: ExpenseCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    try:
        return marketing_service.create_expense(db, session.org_id, project.id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/projects/{project_id}/expenses/import",
    response_model=ExpenseImportResult,
    dependencies=[Depends(require_csrf_header)],
)
async def import_expenses(
    project_id: UUID,
    file: UploadFile = File(...),
    channel: MarketingChannel = Form(MarketingChannel.OTHER),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """CSV spend import. Rows already imported for this project are skipped."""
    project = _get_project_or_404(db, session, project_id)
    content = await file.read()
    try:
        return expense_import_service.import_expenses(
            db,
            session.org_id,
            project.id,
            file.filename or "import.csv",
            content,
            default_channel=channel,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/projects/{project_id}/expenses/{expense_id}",
    response_model=ExpenseRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_expense(
    project_id: UUID,
    expense_id: UUID,
    data: ExpenseUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    expense = marketing_service.get_expense(db, project.id, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    try:
        return marketing_service.update_expense(db, expense, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/projects/{project_id}/expenses/{expense_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_expense(
    project_id: UUID,
    expense_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    expense = marketing_service.get_expense(db, project.id, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    marketing_service.delete_expense(db, expense)


# =============================================================================
# Leads
# =============================================================================

@router.post("/leads/submit", response_model=LeadRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(PUBLIC_LIMIT)
def submit_lead(
    data: PublicLeadSubmit,
    request: Request,  # Required by limiter
    db: Session = Depends(get_db),
):
    """Unauthenticated capture from landing pages."""
    try:
        return marketing_service.submit_public_lead(db, data)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/projects/{project_id}/leads", response_model=list[LeadRead])
def list_leads(
    project_id: UUID,
    deal_status: DealStatus | None = None,
    campaign_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    return marketing_service.list_leads(db, project.id, deal_status, campaign_id)


@router.post(
    "/projects/{project_id}/leads",
    response_model=LeadRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_lead(
    project_id: UUID,
    data: LeadCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    try:
        return marketing_service.create_lead(db, session.org_id, project.id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/projects/{project_id}/leads/{lead_id}",
    response_model=LeadRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_lead(
    project_id: UUID,
    lead_id: UUID,
    data: LeadUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    lead = marketing_service.get_lead(db, project.id, lead_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    try:
        return marketing_service.update_lead(db, lead, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/projects/{project_id}/leads/{lead_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_lead(
    project_id: UUID,
    lead_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    lead = marketing_service.get_lead(db, project.id, lead_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    marketing_service.delete_lead(db, lead)


# =============================================================================
# Metrics & reports
# =============================================================================

@router.get("/projects/{project_id}/metrics", response_model=MetricsResponse)
def get_metrics(
    project_id: UUID,
    start: date,
    end: date,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    try:
        return marketing_metrics.load_metrics(db, project.id, start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/projects/{project_id}/reports", response_model=list[ReportRead])
def list_reports(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    return marketing_metrics.list_reports(db, project.id)


@router.post(
    "/projects/{project_id}/reports",
    response_model=ReportRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_report(
    project_id: UUID,
    data: ReportCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Freeze the current metrics for the range behind a shareable token."""
    project = _get_project_or_404(db, session, project_id)
    try:
        return marketing_metrics.create_report(
            db, session.org_id, project.id, session.user_id, data
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/projects/{project_id}/reports/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_report(
    project_id: UUID,
    report_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    report = db.query(MarketingReport).filter(
        MarketingReport.id == report_id,
        MarketingReport.project_id == project.id,
    ).first()
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    marketing_metrics.delete_report(db, report)


@router.get("/reports/public/{token}", response_model=ReportRead)
@limiter.limit(PUBLIC_LIMIT)
def get_public_report(
    token: str,
    request: Request,  # Required by limiter
    db: Session = Depends(get_db),
):
    report = marketing_metrics.get_public_report(db, token)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


# =============================================================================
# Offline conversion exports
# =============================================================================

@router.get("/projects/{project_id}/exports/google")
def export_google(
    project_id: UUID,
    since: datetime | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> Response:
    project = _get_project_or_404(db, session, project_id)
    content = offline_export_service.export_google(db, project.id, since)
    return _csv_response(content, f"google_offline_conversions_{date.today().isoformat()}.csv")


@router.get("/projects/{project_id}/exports/meta")
def export_meta(
    project_id: UUID,
    since: datetime | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> Response:
    project = _get_project_or_404(db, session, project_id)
    content = offline_export_service.export_meta(db, project.id, since)
    return _csv_response(content, f"meta_offline_conversions_{date.today().isoformat()}.csv")


@router.get("/projects/{project_id}/exports/audience")
def export_audience(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> Response:
    """SHA-256 hashed emails for customer-match audiences."""
    project = _get_project_or_404(db, session, project_id)
    content = offline_export_service.export_audience(db, project.id)
    return _csv_response(content, f"hashed_audience_{date.today().isoformat()}.csv")
