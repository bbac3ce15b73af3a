from typing import Iterable

from django.utils.translation import gettext_lazy as _
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.exceptions import APIException


class BusinessRuleError(APIException):
    """
    Request is well-formed, but violates a rule of the current state
    (table is busy, discount expired, receipt already completed, ...)
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('Business rule violated.')
    default_code = 'business_rule'


class InvalidTransitionError(BusinessRuleError):
    default_code = 'invalid_transition'

    def __init__(self, current: str, target: str, allowed: Iterable[str]):
        self.current = current
        self.target = target
        self.allowed = list(allowed)
        allowed_display = ', '.join(self.allowed) if self.allowed else 'none'
        super().__init__(
            detail=_('Invalid status transition from %(current)s to %(target)s. '
                     'Allowed transitions: %(allowed)s') % {'current': current,
                                                            'target': target,
                                                            'allowed': allowed_display}
        )


def pydantic_errors(error: PydanticValidationError) -> list[dict]:
    """
    Returns JSON-friendly list of pydantic errors
    """
    return error.errors(include_url=False, include_context=False)
