"""Services for Stofhamp."""

from .cache import Cache, read_through
from .images import ImageUploadError
from .mailer import MailerError

__all__ = ["Cache", "read_through", "ImageUploadError", "MailerError"]
