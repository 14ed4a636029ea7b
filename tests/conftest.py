"""Pytest fixtures for CDK construct and provisioning tests."""

from pathlib import Path

import aws_cdk as cdk
import pytest


@pytest.fixture
def app() -> cdk.App:
  """Create a CDK App for testing."""
  return cdk.App()


@pytest.fixture
def stack(app: cdk.App) -> cdk.Stack:
  """Create a CDK Stack for testing."""
  return cdk.Stack(app, "TestStack", env=cdk.Environment(region="us-east-1"))


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
  """A small build output tree."""
  root = tmp_path / "dist"
  (root / "about").mkdir(parents=True)
  (root / "_astro").mkdir()
  (root / "index.html").write_text("<h1>home</h1>")
  (root / "about" / "index.html").write_text("<h1>about</h1>")
  (root / "_astro" / "app.1a2b3c.js").write_text("console.log('hi')")
  return root


class FakeClock:
  """Monotonic clock that only moves when ``sleep`` is called."""

  def __init__(self) -> None:
    self.now = 0.0
    self.sleeps: list[float] = []

  def __call__(self) -> float:
    return self.now

  def sleep(self, seconds: float) -> None:
    self.sleeps.append(seconds)
    self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()
