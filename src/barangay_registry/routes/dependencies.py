"""
Service providers for the records and dashboard routers.

Each provider builds a service around the shared Redis client from
`get_redis_client`, so tests can swap the whole stack by overriding that one
dependency with `app.dependency_overrides`.
"""

import redis.asyncio as aioredis
from fastapi import Depends

from barangay_registry.routes.auth.dependencies import get_redis_client
from barangay_registry.services.aggregation_engine import AggregationEngine
from barangay_registry.services.auth_service import AuthService
from barangay_registry.services.record_repository import RecordRepository


def get_record_repository(redis: aioredis.Redis = Depends(get_redis_client)) -> RecordRepository:
    return RecordRepository(redis)


def get_aggregation_engine(repository: RecordRepository = Depends(get_record_repository)) -> AggregationEngine:
    return AggregationEngine(repository)


def get_auth_service(redis: aioredis.Redis = Depends(get_redis_client)) -> AuthService:
    return AuthService(redis)
