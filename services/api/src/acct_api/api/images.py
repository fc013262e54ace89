"""头像接口。"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from acct_api.db.session import get_db
from acct_api.dependencies import get_current_account, get_registry
from acct_api.exceptions import InvalidInput
from acct_api.models.account import Account
from acct_api.registry import ServiceRegistry
from acct_api.schemas.common import ErrorResponse
from acct_api.schemas.image import ImageData
from acct_api.services import UploadedPicture, delete_profile_image, require_image_for_account, upload_profile_image

router = APIRouter(prefix="/user/self/pic", tags=["images"])

PROFILE_PIC_FIELD = "profilePic"


async def read_profile_picture(request: Request) -> UploadedPicture:
    """从表单中读取唯一的文件字段 `profilePic`。"""
    form = await request.form()
    try:
        files = [(key, value) for key, value in form.multi_items() if isinstance(value, UploadFile)]
        if not files:
            raise InvalidInput(f"{PROFILE_PIC_FIELD} file is required")
        if len(files) > 1:
            raise InvalidInput("exactly one file is allowed")
        field_name, upload = files[0]
        if field_name != PROFILE_PIC_FIELD:
            raise InvalidInput(f"file must be sent as {PROFILE_PIC_FIELD}")
        if not upload.filename:
            raise InvalidInput(f"{PROFILE_PIC_FIELD} file is required")
        content = await upload.read()
        return UploadedPicture(
            filename=upload.filename,
            content_type=upload.content_type or "",
            content=content,
        )
    finally:
        await form.close()


@router.post(
    "",
    name="image_upload",
    summary="上传头像",
    description="上传 jpg/jpeg/png/gif 头像；每个账号至多一张。",
    status_code=status.HTTP_201_CREATED,
    response_model=ImageData,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def upload_image(
    account: Account = Depends(get_current_account),
    picture: UploadedPicture = Depends(read_profile_picture),
    db: Session = Depends(get_db),
    registry: ServiceRegistry = Depends(get_registry),
):
    """上传头像。"""
    image = upload_profile_image(db, registry.object_store, registry.metrics, account, picture)
    return ImageData.model_validate(image)


@router.get(
    "",
    name="image_get",
    summary="查询头像",
    status_code=status.HTTP_200_OK,
    response_model=ImageData,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_image(
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """查询头像。"""
    return ImageData.model_validate(require_image_for_account(db, account.id))


@router.delete(
    "",
    name="image_delete",
    summary="删除头像",
    description="先删除对象存储中的文件，成功后再删除记录。",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def delete_image(
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
    registry: ServiceRegistry = Depends(get_registry),
):
    """删除头像。"""
    delete_profile_image(db, registry.object_store, registry.metrics, account)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
