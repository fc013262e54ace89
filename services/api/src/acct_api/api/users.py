"""账号接口。"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from acct_api.db.session import get_db
from acct_api.dependencies import get_current_account, get_registry, reject_query_params, reject_request_body
from acct_api.exceptions import UpstreamFailure
from acct_api.models.account import Account
from acct_api.registry import ServiceRegistry
from acct_api.schemas.common import ErrorResponse
from acct_api.schemas.user import AccountCreateRequest, AccountData, AccountUpdateRequest
from acct_api.services import (
    NotificationError,
    account_created_message,
    create_account,
    deliver_verification_email,
    public_account,
    publish_account_created,
    update_account,
    verification_link,
)
from acct_api.services.metrics import timed

router = APIRouter(prefix="/user", tags=["users"])

_AUTH_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


@router.post(
    "",
    name="user_create",
    summary="创建账号",
    description="创建未验证账号，签发一次性验证令牌并发送验证邮件。",
    status_code=status.HTTP_201_CREATED,
    response_model=AccountData,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    dependencies=[Depends(reject_query_params)],
)
def create_user(
    payload: AccountCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    registry: ServiceRegistry = Depends(get_registry),
):
    """创建账号。"""
    settings = registry.settings
    with timed(registry.metrics, "db.account_create.latency"):
        created = create_account(
            db,
            payload,
            password_hash_iterations=settings.auth_password_hash_iterations,
            token_ttl_seconds=settings.verification_token_ttl_seconds,
        )

    verify_url = verification_link(settings.app_base_url, created.verification_token)
    try:
        publish_account_created(
            registry.notifier,
            account_created_message(created, verify_url=verify_url),
            fail_request=settings.notify_fail_request_on_publish_error,
        )
    except NotificationError as exc:
        raise UpstreamFailure("account created but notification failed") from exc

    # 邮件在响应返回后发送，失败不影响本次请求。
    background_tasks.add_task(
        deliver_verification_email,
        registry.mailer,
        to_email=created.account.email,
        first_name=created.account.first_name,
        verify_url=verify_url,
    )
    return public_account(created.account)


@router.get(
    "/self",
    name="user_self_get",
    summary="查询当前账号",
    description="Basic 认证后返回当前账号公开信息；不允许携带查询参数或请求体。",
    status_code=status.HTTP_200_OK,
    response_model=AccountData,
    responses=_AUTH_ERRORS,
)
def get_self(
    account: Account = Depends(get_current_account),
    _query: None = Depends(reject_query_params),
    _body: None = Depends(reject_request_body),
):
    """查询当前账号。"""
    return public_account(account)


@router.put(
    "/self",
    name="user_self_update",
    summary="更新当前账号",
    description="仅允许更新 firstName/lastName/password；email 不可修改。",
    status_code=status.HTTP_200_OK,
    response_model=AccountData,
    responses=_AUTH_ERRORS,
)
def update_self(
    payload: AccountUpdateRequest,
    account: Account = Depends(get_current_account),
    _query: None = Depends(reject_query_params),
    db: Session = Depends(get_db),
    registry: ServiceRegistry = Depends(get_registry),
):
    """更新当前账号。"""
    with timed(registry.metrics, "db.account_update.latency"):
        updated = update_account(
            db,
            account,
            payload,
            password_hash_iterations=registry.settings.auth_password_hash_iterations,
        )
    return public_account(updated)
