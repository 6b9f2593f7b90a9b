"""Deployment context handed to a canary run."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DeploymentEnvironment(str, Enum):
    PREVIEW = "preview"
    PRODUCTION = "production"
    DEVELOPMENT = "development"


class DeploymentContext(BaseModel):
    """Identifies the deployment a canary run validates.

    Attributes
    ----------
    deployment_url:
        Base URL the synthetic users exercise.
    deployment_id:
        Deployment identifier.
    branch_name:
        Source branch the deployment was built from.
    commit_sha:
        Commit the deployment was built from.
    environment:
        Target environment.
    is_canary:
        True for canary deployments.
    """

    model_config = ConfigDict(frozen=True)

    deployment_url: str = Field(min_length=1)
    deployment_id: str = "quick-validation"
    branch_name: str = "main"
    commit_sha: str = "unknown"
    environment: DeploymentEnvironment = DeploymentEnvironment.PREVIEW
    is_canary: bool = True


__all__ = ["DeploymentContext", "DeploymentEnvironment"]
