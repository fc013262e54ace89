"""头像管理服务。

对象存储与数据库记录之间没有分布式事务，一致性依靠调用顺序保证：
- 上传：先写对象，再写记录（不会出现没有对象的记录）；
- 删除：先删对象，再删记录（对象删除失败时保留记录）。
"""

import logging
from dataclasses import dataclass
from pathlib import PurePath
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from acct_api.exceptions import Conflict, InvalidInput, NotFound, UpstreamFailure
from acct_api.models.account import Account
from acct_api.models.image import ProfileImage
from acct_api.services.metrics import MetricsSink, timed
from acct_api.services.storage import ObjectStore, ObjectStoreError
from acct_api.utils.clock import utcnow

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})
ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif"})


@dataclass
class UploadedPicture:
    """表单中解析出的单个上传文件。"""

    filename: str
    content_type: str
    content: bytes


def validate_picture(picture: UploadedPicture) -> str:
    """校验声明类型与扩展名（两者独立校验），返回小写扩展名。"""
    content_type = (picture.content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidInput(f"unsupported content type: {content_type or 'unknown'}")

    extension = PurePath(picture.filename).suffix.lstrip(".").lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise InvalidInput(f"unsupported file extension: {extension or 'none'}")

    if not picture.content:
        raise InvalidInput("file is empty")
    return extension


def generate_file_name(extension: str) -> str:
    return f"{uuid4().hex}.{extension}"


def build_object_key(user_id: UUID, file_name: str) -> str:
    """对象键按账号 ID 分区。"""
    return f"{user_id}/{file_name}"


def get_image_for_account(db: Session, user_id: UUID) -> ProfileImage | None:
    try:
        return db.execute(select(ProfileImage).where(ProfileImage.user_id == user_id)).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.error("image lookup failed user_id=%s", user_id, exc_info=True)
        raise UpstreamFailure("database unavailable") from exc


def require_image_for_account(db: Session, user_id: UUID) -> ProfileImage:
    image = get_image_for_account(db, user_id)
    if image is None:
        raise NotFound("profile image not found")
    return image


def _discard_blob(store: ObjectStore, key: str) -> None:
    """补偿删除刚写入的对象，失败只记录日志。"""
    try:
        store.delete_object(key=key)
    except ObjectStoreError:
        logger.error("orphan blob left behind key=%s", key, exc_info=True)


def upload_profile_image(
    db: Session,
    store: ObjectStore,
    metrics: MetricsSink,
    account: Account,
    picture: UploadedPicture,
) -> ProfileImage:
    """上传头像：校验 → 存在性检查 → 写对象 → 写记录。"""
    extension = validate_picture(picture)

    if get_image_for_account(db, account.id) is not None:
        raise Conflict("profile image already exists")

    file_name = generate_file_name(extension)
    object_key = build_object_key(account.id, file_name)
    try:
        with timed(metrics, "s3.put_object.latency"):
            url = store.put_object(key=object_key, content=picture.content, content_type=picture.content_type)
    except ObjectStoreError as exc:
        logger.error("profile image upload failed user_id=%s", account.id, exc_info=True)
        raise UpstreamFailure("object store unavailable") from exc

    image = ProfileImage(
        id=uuid4(),
        file_name=file_name,
        url=url,
        object_key=object_key,
        upload_date=utcnow().date(),
        user_id=account.id,
    )
    db.add(image)
    try:
        with timed(metrics, "db.image_insert.latency"):
            db.commit()
    except IntegrityError as exc:
        # 并发上传时唯一约束兜底：撤销本次写入的对象。
        db.rollback()
        _discard_blob(store, object_key)
        raise Conflict("profile image already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        _discard_blob(store, object_key)
        logger.error("profile image record failed user_id=%s", account.id, exc_info=True)
        raise UpstreamFailure("database unavailable") from exc

    logger.info("profile image uploaded user_id=%s image_id=%s", account.id, image.id)
    return image


def delete_profile_image(db: Session, store: ObjectStore, metrics: MetricsSink, account: Account) -> None:
    """删除头像：先删对象，成功后再删记录。"""
    image = require_image_for_account(db, account.id)
    try:
        with timed(metrics, "s3.delete_object.latency"):
            store.delete_object(key=image.object_key)
    except ObjectStoreError as exc:
        logger.error("profile image blob delete failed image_id=%s", image.id, exc_info=True)
        raise UpstreamFailure("object store unavailable") from exc

    db.delete(image)
    try:
        with timed(metrics, "db.image_delete.latency"):
            db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("profile image record delete failed image_id=%s", image.id, exc_info=True)
        raise UpstreamFailure("database unavailable") from exc
    logger.info("profile image deleted user_id=%s image_id=%s", account.id, image.id)
