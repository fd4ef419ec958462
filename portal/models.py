"""
Typed records for portal generation. Catalog records are frozen once loaded;
result and history records are plain mutable models owned by whoever produced them.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PortalType = Literal["core", "agents", "consciousness", "system"]
RecordStatus = Literal["idle", "generating", "deploying", "success", "error"]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class BackendEndpoints(BaseModel):
    """Shared backend URLs; read-only after load."""

    model_config = ConfigDict(frozen=True)

    production: str
    websocket: str


class PortalConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    domain: str = ""
    icon: str = ""
    description: str = ""
    tier: int = 1
    type: PortalType
    template: str = "base-portal"
    features: List[str] = Field(default_factory=list)
    integrations: List[str] = Field(default_factory=list)
    repository: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    ucf: Dict[str, Any] = Field(default_factory=dict)

    def descriptor_fields(self) -> Dict[str, Any]:
        """Fields as declared in the catalog (plus type), for portal.config.json."""
        return self.model_dump(exclude_none=True)


class BatchResult(BaseModel):
    """One line of a CLI batch report."""

    id: str
    status: Literal["success", "failed"]
    path: Optional[str] = None
    error: Optional[str] = None


class GenerationReport(BaseModel):
    generatedAt: str = Field(default_factory=utc_now_iso)
    totalPortals: int
    results: List[BatchResult]


class DeploymentResult(BaseModel):
    success: bool
    portalId: str
    deploymentUrl: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)


class GeneratedPortalRecord(BaseModel):
    """History entry for one generation attempt triggered through the server."""

    portalId: str
    status: RecordStatus = "idle"
    message: Optional[str] = None
    deploymentUrl: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)
    startedAt: str = Field(default_factory=utc_now_iso)
    finishedAt: Optional[str] = None

    def apply_result(self, result: DeploymentResult) -> None:
        self.logs.extend(result.logs)
        self.deploymentUrl = result.deploymentUrl
        self.finishedAt = utc_now_iso()
        if result.success:
            self.status = "success"
            self.message = f"Portal {self.portalId} generated"
        else:
            self.status = "error"
            self.error = result.error
            self.message = f"Portal {self.portalId} failed"


class PortalStatus(BaseModel):
    exists: bool
    path: Optional[str] = None
    hasNodeModules: Optional[bool] = None
    lastModified: Optional[datetime] = None
