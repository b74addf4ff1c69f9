"""
Deployment models — the command contract with the control plane.

A DeploymentRequest is what the dispatcher sends; a Deployment is what
the control plane reports back while the operation runs.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommandName(StrEnum):
    """Commands the control plane can run on a stack."""

    DEPLOY = "deploy"
    CONFIGURE = "configure"
    SETUP = "setup"
    UPDATE_CUSTOM_COOKBOOKS = "update_custom_cookbooks"
    EXECUTE_RECIPES = "execute_recipes"


class DeploymentStatus(StrEnum):
    """Statuses the monitor understands. Anything else is terminal."""

    RUNNING = "running"
    SUCCESSFUL = "successful"
    FAILED = "failed"


class DeploymentCommand(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    name: str = Field(alias="Name")
    args: dict[str, list[str]] | None = Field(default=None, alias="Args")

    @property
    def recipes(self) -> list[str]:
        if not self.args:
            return []
        return self.args.get("recipes", [])


class Deployment(BaseModel):
    """One remote operation and its current status."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str = Field(alias="DeploymentId")
    stack_id: str = Field(default="", alias="StackId")
    app_id: str | None = Field(default=None, alias="AppId")
    command: DeploymentCommand | None = Field(default=None, alias="Command")
    status: str = Field(alias="Status")
    created_at: str | None = Field(default=None, alias="CreatedAt")
    completed_at: str | None = Field(default=None, alias="CompletedAt")
    duration: int | None = Field(default=None, alias="Duration")
    iam_user_arn: str | None = Field(default=None, alias="IamUserArn")
    comment: str | None = Field(default=None, alias="Comment")
    custom_json: str | None = Field(default=None, alias="CustomJson")

    @property
    def running(self) -> bool:
        return self.status == DeploymentStatus.RUNNING

    @property
    def successful(self) -> bool:
        return self.status == DeploymentStatus.SUCCESSFUL

    @property
    def failed(self) -> bool:
        return self.status == DeploymentStatus.FAILED

    @property
    def command_name(self) -> str:
        return self.command.name if self.command else ""


class DeploymentRequest(BaseModel):
    """Parameters of one create-deployment call."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    stack_id: str = Field(alias="StackId")
    layer_ids: list[str] = Field(default_factory=list, alias="LayerIds")
    command: DeploymentCommand = Field(alias="Command")
    app_id: str | None = Field(default=None, alias="AppId")

    def to_api_params(self) -> dict[str, Any]:
        """Keyword arguments for the control plane's CreateDeployment."""
        return self.model_dump(by_alias=True, exclude_none=True)
