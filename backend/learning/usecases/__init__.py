"""Use case layer for the Learning context.

Re-export common use cases for convenient imports in tests.
"""

from .submissions import (
    AnalyzeSubmissionUseCase,
    CreateSubmissionInput,
    CreateSubmissionUseCase,
    DeleteSubmissionUseCase,
    GetSubmissionUseCase,
    ListSubmissionsInput,
    ListSubmissionsUseCase,
    UpdateSubmissionInput,
    UpdateSubmissionUseCase,
)

__all__ = [
    "AnalyzeSubmissionUseCase",
    "CreateSubmissionInput",
    "CreateSubmissionUseCase",
    "DeleteSubmissionUseCase",
    "GetSubmissionUseCase",
    "ListSubmissionsInput",
    "ListSubmissionsUseCase",
    "UpdateSubmissionInput",
    "UpdateSubmissionUseCase",
]
