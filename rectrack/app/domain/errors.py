from __future__ import annotations


class RecommendationStoreError(Exception):
    pass


class UnauthorizedError(RecommendationStoreError):
    def __init__(self, message: str = "Unauthorized: sign in to perform this operation"):
        super().__init__(message)


class StorageOperationError(RecommendationStoreError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Storage operation failed during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class RecommendationNotFoundError(RecommendationStoreError, LookupError):
    def __init__(self, recommendation_id: str):
        super().__init__(f"Recommendation not found: {recommendation_id}")
        self.recommendation_id = recommendation_id


class CategoryConflictError(RecommendationStoreError, ValueError):
    def __init__(self, slug: str):
        super().__init__(f"A category with this name already exists: {slug}")
        self.slug = slug


class AuthenticationError(RecommendationStoreError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)
