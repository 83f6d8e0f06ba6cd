"""
Tests for ServiceResult and BaseService.
"""

import pytest

from core.services import BaseService, ServiceResult
from rental.exceptions import MissingEvidence
from rental.models import ClientAccount
from rental.services import UsageService
from rental.tests.factories import ClientAccountFactory


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"balance": "500000"})

        assert result.success is True
        assert result.data == {"balance": "500000"}
        assert result.error is None
        assert result.error_code is None

    def test_from_application_error_keeps_code(self):
        result = ServiceResult.from_exception(MissingEvidence("Evidence is required"))

        assert result.success is False
        assert result.data is None
        assert result.error == "Evidence is required"
        assert result.error_code == "MISSING_EVIDENCE"

    def test_from_plain_exception_uses_class_name(self):
        result = ServiceResult.from_exception(KeyError("rental_id"))

        assert result.success is False
        assert result.error_code == "KEYERROR"

    def test_error_code_override(self):
        result = ServiceResult.from_exception(ValueError("bad"), error_code="BAD_INPUT")

        assert result.error_code == "BAD_INPUT"


class TestBaseService:
    def test_logger_named_after_service(self):
        assert UsageService.get_logger().name == "rental.services.usage_service.UsageService"

    @pytest.mark.django_db
    def test_atomic_rolls_back_on_error(self):
        with pytest.raises(RuntimeError):
            with BaseService.atomic():
                ClientAccountFactory()
                raise RuntimeError("abort")

        assert ClientAccount.objects.count() == 0
