"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps. Nothing in
here knows about apartments or ledgers.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - AppendOnlyMixin: Insert-only rows

Services (import from core.services):
    - BaseService: Base class for service layer
    - UnitOfWork / unit_of_work: Explicit transaction handle

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - ConflictError: State conflicts
"""
