from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from partsledger.api.deps import RequestContext, get_db, get_request_context
from partsledger.schemas.common import ListResponse
from partsledger.schemas.issues import InventoryIssueCreate, InventoryIssuePosted, InventoryIssueRead
from partsledger.services import inventory_issues as issues_service

router = APIRouter(prefix="/inventory/issues", tags=["inventory-issues"])


@router.post("", response_model=InventoryIssueRead, status_code=status.HTTP_201_CREATED)
def create_issue(
    payload: InventoryIssueCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    return issues_service.inventory_issues.create_draft(db, payload, issued_by=context.actor)


@router.get("", response_model=ListResponse[InventoryIssueRead])
def list_issues(
    status: str | None = None,
    warehouse_id: str | None = None,
    request_id: str | None = None,
    work_order_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return issues_service.inventory_issues.list_response(
        db,
        status=status,
        warehouse_id=warehouse_id,
        request_id=request_id,
        work_order_id=work_order_id,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{issue_id}", response_model=InventoryIssueRead)
def get_issue(issue_id: str, db: Session = Depends(get_db)):
    return issues_service.inventory_issues.get(db, issue_id)


@router.post("/{issue_id}/post", response_model=InventoryIssuePosted)
def post_issue(issue_id: str, db: Session = Depends(get_db)):
    issue = issues_service.inventory_issues.post(db, issue_id)
    return InventoryIssuePosted(message="Issue posted", issue=InventoryIssueRead.model_validate(issue))


@router.post("/{issue_id}/cancel", response_model=InventoryIssueRead)
def cancel_issue(issue_id: str, db: Session = Depends(get_db)):
    return issues_service.inventory_issues.cancel(db, issue_id)
