from .base import *  # noqa: F403
from .celery import *  # noqa: F403
from .flags import *  # noqa: F403
from .ninja import *  # noqa: F403
from .observability import *  # noqa: F403
from .passes import *  # noqa: F403
