"""服务层能力导出集合。"""

from acct_api.services.accounts import (
    CreatedAccount,
    account_created_message,
    create_account,
    get_account_by_email,
    normalize_email,
    public_account,
    update_account,
)
from acct_api.services.images import (
    UploadedPicture,
    delete_profile_image,
    require_image_for_account,
    upload_profile_image,
)
from acct_api.services.mailer import deliver_verification_email
from acct_api.services.notifier import NotificationError, publish_account_created
from acct_api.services.verification import verification_link, verify_email_token

__all__ = [
    "CreatedAccount",
    "NotificationError",
    "UploadedPicture",
    "account_created_message",
    "create_account",
    "delete_profile_image",
    "deliver_verification_email",
    "get_account_by_email",
    "normalize_email",
    "public_account",
    "publish_account_created",
    "require_image_for_account",
    "update_account",
    "upload_profile_image",
    "verification_link",
    "verify_email_token",
]
