import json
import os
import subprocess
import tempfile
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

from app.features.scoring.schemas.scoring import LighthouseMetrics
from app.features.scoring.services.metric_extractor import extract_metrics
from app.platform.config import settings
from app.platform.exceptions import MalformedReport, UpstreamFailure
from app.platform.logger import get_logger

logger = get_logger(__name__)

Device = Literal["mobile", "desktop"]

CHROME_FLAGS = "--chrome-flags=--headless --no-sandbox --disable-gpu"


class LighthouseResult(BaseModel):
    success: bool
    metrics: Optional[LighthouseMetrics] = None
    raw_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class LighthouseRunner:
    """Runs the Lighthouse CLI (performance category only) through npx."""

    def __init__(self, timeout: int = 40000):
        # milliseconds, like the CLI's own timeouts
        self.timeout = timeout

    def build_args(self, url: str, output_path: str, device: Device = "mobile", throttling: bool = True) -> List[str]:
        args = [
            url,
            "--only-categories=performance",
            "--output=json",
            f"--output-path={output_path}",
            "--quiet",
            CHROME_FLAGS,
        ]

        if device == "mobile":
            args += [
                "--screenEmulation.mobile=true",
                "--screenEmulation.width=375",
                "--screenEmulation.height=812",
            ]
        else:
            args.append("--preset=desktop")

        args.append("--throttling-method=simulate" if throttling else "--throttling-method=devtools")
        return args

    def _output_dir(self) -> str:
        return tempfile.gettempdir()

    def _command(self, args: List[str]) -> List[str]:
        return ["npx", "lighthouse", *args]

    def _execute(self, args: List[str]) -> None:
        command = self._command(args)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout / 1000,
            )
        except subprocess.TimeoutExpired:
            raise UpstreamFailure("Lighthouse", f"timed out after {self.timeout}ms")
        except OSError as e:
            raise UpstreamFailure("Lighthouse", f"could not start: {e}")

        if completed.returncode != 0:
            logger.error(f"Lighthouse stderr: {completed.stderr}")
            raise UpstreamFailure("Lighthouse", f"exited with code {completed.returncode}")

    def run_raw(self, url: str, device: Device = "mobile", throttling: bool = True) -> Dict[str, Any]:
        """
        Run Lighthouse and return the parsed JSON report.

        Raises:
            UpstreamFailure: if the CLI fails, times out, or writes unreadable JSON.
        """
        output_path = os.path.join(self._output_dir(), f"lighthouse-{uuid.uuid4()}.json")

        try:
            self._execute(self.build_args(url, output_path, device, throttling))
            with open(output_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise UpstreamFailure("Lighthouse", f"could not read report: {e}")
        finally:
            try:
                os.unlink(output_path)
            except FileNotFoundError:
                pass

    def run(self, url: str, device: Device = "mobile", throttling: bool = True) -> LighthouseResult:
        """Run Lighthouse and extract metrics; failures are returned, not raised."""
        logger.info(f"Running Lighthouse ({device}) for {url}")
        try:
            data = self.run_raw(url, device, throttling)
            metrics = extract_metrics(data)
        except (UpstreamFailure, MalformedReport) as e:
            logger.warning(f"Lighthouse run failed for {url}: {e.message}")
            return LighthouseResult(success=False, error=e.message)

        return LighthouseResult(success=True, metrics=metrics, raw_data=data)


class DockerLighthouseRunner(LighthouseRunner):
    """Runs Lighthouse inside a container with the temp directory mounted at /tmp."""

    def __init__(self, timeout: int = 40000, image: Optional[str] = None):
        super().__init__(timeout)
        self.image = image or settings.LIGHTHOUSE_DOCKER_IMAGE
        self.host_dir = tempfile.gettempdir()

    def build_args(self, url: str, output_path: str, device: Device = "mobile", throttling: bool = True) -> List[str]:
        container_path = "/tmp/" + os.path.basename(output_path)
        return super().build_args(url, container_path, device, throttling)

    def _output_dir(self) -> str:
        return self.host_dir

    def _command(self, args: List[str]) -> List[str]:
        return ["docker", "run", "--rm", "-v", f"{self.host_dir}:/tmp", self.image, *args]


def create_lighthouse_runner() -> LighthouseRunner:
    if settings.USE_DOCKER_LIGHTHOUSE:
        return DockerLighthouseRunner(settings.LIGHTHOUSE_TIMEOUT)
    return LighthouseRunner(settings.LIGHTHOUSE_TIMEOUT)
