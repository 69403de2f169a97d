"""Helpers for managing customers."""
from __future__ import annotations

from typing import Any

from .endpoints import ApiName
from .exceptions import ServiceError
from .models import CreateCustomerRequest
from .session import ApiSession


class CustomerService:
    """Thin wrapper around the customers endpoint."""

    def __init__(self, session: ApiSession) -> None:
        self._customers = session.get_api(ApiName.CUSTOMERS)

    async def create_customer(self, customer: CreateCustomerRequest) -> Any:
        try:
            return await self._customers.create_customer(customer)
        except Exception as exc:
            raise ServiceError(f"Failed to create customer: {exc}") from exc
