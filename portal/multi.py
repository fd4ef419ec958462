"""
Server-side portal generation: async, concurrency-limited, never raises past generate_portal.

Batches of max_concurrent run together; each batch is joined before the next starts,
and results come back in input order. Concurrent requests for the same portal id
share one in-flight attempt instead of racing on the same output directory.
"""
import asyncio
import json
import shlex
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from portal.catalog import PortalCatalog, get_catalog
from portal.config import (
    BASE_TEMPLATE,
    get_deploy_domain,
    get_install_command,
    get_install_timeout,
    get_max_concurrent,
    get_portals_dir,
    get_templates_dir,
)
from portal.errors import InstallError
from portal.models import DeploymentResult, PortalConfig, PortalStatus
from portal.templating import build_token_map, merge_directory, replace_in_template_files

README_TEMPLATE = """# {name}

{description}

## Type
{type}

## Features
{features}

## Integrations
{integrations}

## Template
{template}

---

Generated by Helix Portal Orchestrator
"""


def render_readme(config: PortalConfig) -> str:
    return README_TEMPLATE.format(
        name=config.name,
        description=config.description,
        type=config.type,
        features="\n".join(f"- {f}" for f in config.features),
        integrations="\n".join(f"- {i}" for i in config.integrations),
        template=config.template,
    )


class PortalGenerator:
    def __init__(
        self,
        catalog: Optional[PortalCatalog] = None,
        portals_dir: Optional[Path] = None,
        templates_dir: Optional[Path] = None,
        install_command: Optional[str] = None,
        install_timeout: Optional[float] = None,
        deploy_domain: Optional[str] = None,
    ):
        self._catalog = catalog
        self.portals_dir = Path(portals_dir) if portals_dir else get_portals_dir()
        self.templates_dir = Path(templates_dir) if templates_dir else get_templates_dir()
        self.install_command = install_command or get_install_command()
        self.install_timeout = install_timeout if install_timeout is not None else get_install_timeout()
        self.deploy_domain = deploy_domain or get_deploy_domain()
        self._inflight: Dict[str, "asyncio.Task[DeploymentResult]"] = {}
        self._deploy_hooks: Dict[str, List[Callable[[], None]]] = {}

    @property
    def catalog(self) -> PortalCatalog:
        return self._catalog or get_catalog()

    def deployment_url(self, portal_id: str) -> str:
        return f"https://{portal_id}.{self.deploy_domain}"

    def in_flight(self) -> List[str]:
        return sorted(self._inflight)

    async def generate_portal(
        self,
        portal_id: str,
        target_dir: Optional[Path] = None,
        skip_deploy: bool = False,
        on_deploy: Optional[Callable[[], None]] = None,
    ) -> DeploymentResult:
        """Generate one portal. A second call for an id already in flight awaits the first
        attempt (its options win) rather than starting another.

        on_deploy is called just before the dependency install starts; callers that join
        an in-flight attempt get theirs called too if the install has not started yet."""
        if on_deploy is not None:
            self._deploy_hooks.setdefault(portal_id, []).append(on_deploy)
        task = self._inflight.get(portal_id)
        if task is None:
            task = asyncio.ensure_future(self._generate(portal_id, target_dir, skip_deploy))
            self._inflight[portal_id] = task
            task.add_done_callback(lambda t, pid=portal_id: self._release(pid, t))
        else:
            logger.info("Generation for {} already in flight; joining it", portal_id)
        result = await asyncio.shield(task)
        return result.model_copy(deep=True)

    def _release(self, portal_id: str, task: "asyncio.Task[DeploymentResult]") -> None:
        if self._inflight.get(portal_id) is task:
            del self._inflight[portal_id]
            self._deploy_hooks.pop(portal_id, None)

    def _enter_deploy(self, portal_id: str) -> None:
        for hook in self._deploy_hooks.pop(portal_id, []):
            try:
                hook()
            except Exception as e:
                logger.warning("Deploy hook for {} failed: {}", portal_id, e)

    async def _generate(self, portal_id: str, target_dir: Optional[Path], skip_deploy: bool) -> DeploymentResult:
        logs: List[str] = []
        try:
            config = self.catalog.get_portal_config(portal_id)
            if config is None:
                return DeploymentResult(
                    success=False,
                    portalId=portal_id,
                    error=f"Portal configuration not found for: {portal_id}",
                    logs=logs,
                )

            logs.append(f"Starting generation for portal: {config.name}")
            logs.append(f"Template: {config.template}")
            logs.append(f"Features: {', '.join(config.features)}")

            target = Path(target_dir) if target_dir else self.portals_dir / portal_id
            logs.append(f"Target directory: {target}")
            deployment_url = self.deployment_url(portal_id)

            if target.exists():
                logs.append("Portal directory already exists, skipping creation")
                if skip_deploy:
                    return DeploymentResult(success=True, portalId=portal_id, deploymentUrl=deployment_url, logs=logs)
            else:
                logs.append("Creating new portal directory")
                target.mkdir(parents=True, exist_ok=True)

            await asyncio.to_thread(self._copy_template, config, target, logs)

            logs.append("Customizing portal configuration")
            await asyncio.to_thread(self._customize, config, target)

            if not skip_deploy:
                self._enter_deploy(portal_id)
                logs.append("Installing dependencies...")
                output = await self._install(target)
                if output:
                    logs.append(output)

            logs.append("Portal generated successfully")
            logs.append(f"Deployment URL: {deployment_url}")
            return DeploymentResult(success=True, portalId=portal_id, deploymentUrl=deployment_url, logs=logs)
        except Exception as e:
            logger.error("Portal {} generation failed: {}", portal_id, e)
            logs.append(f"Error: {e}")
            return DeploymentResult(success=False, portalId=portal_id, error=str(e), logs=logs)

    def _copy_template(self, config: PortalConfig, target: Path, logs: List[str]) -> None:
        template_path = self.templates_dir / config.template
        logs.append(f"Copying template from: {template_path}")
        if not template_path.is_dir():
            logs.append("Template not found, using base template")
            template_path = self.templates_dir / BASE_TEMPLATE
        merge_directory(template_path, target)
        replace_in_template_files(template_path, target, build_token_map(config, self.catalog.backend))

    def _customize(self, config: PortalConfig, target: Path) -> None:
        package_json = target / "package.json"
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
            data["name"] = config.id
            data["description"] = config.description
            package_json.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Could not update package.json for {}: {}", config.id, e)
        (target / "README.md").write_text(render_readme(config), encoding="utf-8")

    async def _install(self, target: Path) -> str:
        argv = shlex.split(self.install_command)
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(target),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            out, _ = await asyncio.wait_for(proc.communicate(), timeout=self.install_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise InstallError(f"Dependency install timed out after {self.install_timeout:g}s")
        text = (out or b"").decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            message = f"Dependency install exited with code {proc.returncode}"
            if text:
                message += f": {text[-500:]}"
            raise InstallError(message)
        return text

    async def generate_multiple_portals(
        self,
        portal_ids: Iterable[str],
        max_concurrent: Optional[int] = None,
        skip_deploy: bool = False,
    ) -> List[DeploymentResult]:
        """Results are in portal_ids order."""
        if max_concurrent is None:
            max_concurrent = get_max_concurrent()
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        ids = list(portal_ids)
        results: List[DeploymentResult] = []
        for i in range(0, len(ids), max_concurrent):
            batch = ids[i:i + max_concurrent]
            batch_results = await asyncio.gather(
                *(self.generate_portal(pid, skip_deploy=skip_deploy) for pid in batch)
            )
            results.extend(batch_results)
        return results

    async def generate_category(
        self, category: str, max_concurrent: Optional[int] = None, skip_deploy: bool = False
    ) -> List[DeploymentResult]:
        ids = [p.id for p in self.catalog.portals(category)]
        return await self.generate_multiple_portals(ids, max_concurrent=max_concurrent, skip_deploy=skip_deploy)

    async def generate_all_portals(
        self, max_concurrent: Optional[int] = None, skip_deploy: bool = False
    ) -> List[DeploymentResult]:
        ids = [p.id for p in self.catalog.all_portals()]
        return await self.generate_multiple_portals(ids, max_concurrent=max_concurrent, skip_deploy=skip_deploy)

    def get_portal_status(self, portal_id: str) -> PortalStatus:
        """Inspect the server-side output directory. Never raises."""
        portal_path = self.portals_dir / portal_id
        try:
            stats = portal_path.stat()
            return PortalStatus(
                exists=True,
                path=str(portal_path),
                hasNodeModules=(portal_path / "node_modules").is_dir(),
                lastModified=datetime.fromtimestamp(stats.st_mtime),
            )
        except OSError:
            return PortalStatus(exists=False)


_default_generator: Optional[PortalGenerator] = None


def get_generator() -> PortalGenerator:
    global _default_generator
    if _default_generator is None:
        _default_generator = PortalGenerator()
    return _default_generator


def set_generator(generator: Optional[PortalGenerator]) -> None:
    global _default_generator
    _default_generator = generator


async def generate_portal(portal_id: str, target_dir: Optional[Path] = None, skip_deploy: bool = False) -> DeploymentResult:
    return await get_generator().generate_portal(portal_id, target_dir=target_dir, skip_deploy=skip_deploy)


async def generate_multiple_portals(
    portal_ids: Iterable[str], max_concurrent: Optional[int] = None, skip_deploy: bool = False
) -> List[DeploymentResult]:
    return await get_generator().generate_multiple_portals(portal_ids, max_concurrent=max_concurrent, skip_deploy=skip_deploy)


async def generate_all_portals(skip_deploy: bool = False) -> List[DeploymentResult]:
    return await get_generator().generate_all_portals(skip_deploy=skip_deploy)


def get_portal_status(portal_id: str) -> PortalStatus:
    return get_generator().get_portal_status(portal_id)
