from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI

from accounts.controllers import ActorController
from common.exceptions import DomainError
from common.schema import ResponseOk, VersionResponse
from flags.controllers import FeatureFlagController
from ledger.controllers import LedgerController
from passes.controllers import PassController, VenuePassController

from .exception_handlers import handle_django_validation_error, handle_domain_error, handle_general_exception

api = NinjaExtraAPI(
    title="FOMO Backend API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"FOMO API {settings.VERSION}",
    app_name=f"fomo-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, ResponseOk()


api.register_controllers(
    ActorController,
    FeatureFlagController,
    PassController,
    VenuePassController,
    LedgerController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    DomainError: handle_domain_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
