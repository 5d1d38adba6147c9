"""Explicit provisioning dependency graph and its topological evaluator.

Steps are plain data: a name, the component that owns it, a callable and the
names of the steps it depends on. ``requires`` edges carry data (the step
receives those outputs by name); ``after`` edges only constrain ordering.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import Any

from .config import SiteConfig
from .errors import GraphError, ProvisioningError
from .providers.base import CloudProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
  """Explicit state threaded through every step of a provisioning run."""

  site: SiteConfig
  provider: CloudProvider


StepFn = Callable[[RunContext, Mapping[str, Any]], Any]


@dataclass(frozen=True)
class Step:
  name: str
  component: str
  run: StepFn
  requires: tuple[str, ...] = ()
  after: tuple[str, ...] = ()

  @property
  def depends_on(self) -> tuple[str, ...]:
    return self.requires + tuple(name for name in self.after if name not in self.requires)


@dataclass
class RunResult:
  """Outputs of a completed run, keyed by step name."""

  outputs: dict[str, Any] = field(default_factory=dict)
  completed: list[str] = field(default_factory=list)

  def __getitem__(self, name: str) -> Any:
    return self.outputs[name]


class ProvisioningGraph:
  """A set of steps connected by directed dependency edges."""

  def __init__(self, steps: Iterable[Step] = ()) -> None:
    self._steps: dict[str, Step] = {}
    for step in steps:
      self.add(step)

  def add(self, step: Step) -> Step:
    if step.name in self._steps:
      raise GraphError(f"Duplicate step: {step.name}")
    self._steps[step.name] = step
    return step

  @property
  def steps(self) -> dict[str, Step]:
    return dict(self._steps)

  def order(self) -> list[str]:
    """Return a deterministic topological order of the step names.

    Steps are released level by level; within a level, insertion order wins.
    """
    sorter = self._sorter()
    result: list[str] = []
    while sorter.is_active():
      for name in self._by_insertion(sorter.get_ready()):
        result.append(name)
        sorter.done(name)
    return result

  def evaluate(self, context: RunContext, max_workers: int = 1) -> RunResult:
    """Run every step after its dependencies.

    With ``max_workers`` > 1, independent ready steps run concurrently on a
    bounded thread pool. The first failure stops new steps from starting and
    is re-raised once in-flight steps have finished.
    """
    if max_workers < 1:
      raise ValueError("max_workers must be at least 1")

    result = RunResult()
    if max_workers == 1:
      self._evaluate_serial(context, result)
    else:
      self._evaluate_parallel(context, result, max_workers)
    return result

  def _evaluate_serial(self, context: RunContext, result: RunResult) -> None:
    sorter = self._sorter()
    while sorter.is_active():
      for name in self._by_insertion(sorter.get_ready()):
        try:
          result.outputs[name] = self._run_step(name, context, result.outputs)
        except Exception as e:
          self._fail(name, e, result)
          raise
        result.completed.append(name)
        sorter.done(name)

  def _evaluate_parallel(
    self, context: RunContext, result: RunResult, max_workers: int
  ) -> None:
    sorter = self._sorter()
    failure: tuple[str, Exception] | None = None
    running: dict[Future[Any], str] = {}

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="step") as pool:
      while sorter.is_active() and failure is None:
        for name in self._by_insertion(sorter.get_ready()):
          # Inputs are captured on this thread; workers never see shared outputs
          inputs = {dep: result.outputs[dep] for dep in self._steps[name].requires}
          running[pool.submit(self._run_step, name, context, inputs)] = name

        done, _ = wait(running, return_when=FIRST_COMPLETED)
        for future in done:
          name = running.pop(future)
          try:
            result.outputs[name] = future.result()
          except Exception as e:
            if failure is None:
              failure = (name, e)
            else:
              logger.error("Step %s also failed: %s", name, e)
            continue
          result.completed.append(name)
          sorter.done(name)

      # Let in-flight steps finish before reporting the failure
      for future, name in list(running.items()):
        try:
          result.outputs[name] = future.result()
          result.completed.append(name)
        except Exception as e:
          logger.error("Step %s also failed: %s", name, e)

    if failure is not None:
      name, error = failure
      self._fail(name, error, result)
      raise error

  def _run_step(self, name: str, context: RunContext, outputs: Mapping[str, Any]) -> Any:
    step = self._steps[name]
    inputs = {dep: outputs[dep] for dep in step.requires}
    logger.info("Running %s (%s)", name, step.component)
    output = step.run(context, inputs)
    logger.debug("Finished %s", name)
    return output

  def _fail(self, name: str, error: Exception, result: RunResult) -> None:
    if isinstance(error, ProvisioningError):
      error.step = name
    logger.error("Step %s failed: %s", name, error)
    for skipped in self._steps:
      if skipped != name and skipped not in result.completed:
        logger.warning("Skipping %s: run aborted after %s failed", skipped, name)

  def _sorter(self) -> TopologicalSorter[str]:
    sorter: TopologicalSorter[str] = TopologicalSorter()
    for step in self._steps.values():
      for dep in step.depends_on:
        if dep not in self._steps:
          raise GraphError(f"Step {step.name} depends on unknown step {dep}")
      sorter.add(step.name, *step.depends_on)
    try:
      sorter.prepare()
    except CycleError as e:
      raise GraphError(f"Dependency cycle: {' -> '.join(e.args[1])}") from e
    return sorter

  def _by_insertion(self, names: Iterable[str]) -> list[str]:
    index = {name: i for i, name in enumerate(self._steps)}
    return sorted(names, key=index.__getitem__)
