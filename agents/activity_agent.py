#!/usr/bin/env python3
"""Repository activity agent.

Each run branches off the primary branch, applies small random edits to a
few text files, commits, pushes, opens a pull request, waits a human-like
interval, squash-merges it and deletes the branch. Runs are fail-fast: the
first failing stage ends the run and the next scheduled run is the retry.
"""

import argparse
import logging
import random
import sys
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from clients.git_client import GitClient
from clients.github_client import GithubClient
from configs.config import Config
from configs.run_config import RunConfig, load_run_config, require_token
from utils.errors import AgentError, ConfigurationError, FilesystemError, RemoteApiError, VcsCommandError
from utils.file_discovery import collect_candidates, write_seed_files
from utils.metrics import StageTimer, incr
from utils.mutation_engine import TIMESTAMP_FORMAT, MutationEngine
from utils.run_models import BranchHandle, MutationPlan, PullRequestHandle, RunOutcome, Stage
from utils.scheduler import CronScheduler
from utils.workspace import WorkingCopy

# Set up logging
logger = logging.getLogger(__name__)

SEED_COMMIT_MESSAGE = "Add initial files"


class ActivityAgent:
	"""Runs the branch → mutate → PR → merge → cleanup pipeline."""

	def __init__(
		self,
		config: RunConfig,
		git: GitClient,
		github: GithubClient,
		*,
		engine: Optional[MutationEngine] = None,
		workspace: Optional[WorkingCopy] = None,
		rng: Optional[random.Random] = None,
		sleep: Callable[[float], Any] = time.sleep,
		now: Optional[Callable[[], datetime]] = None,
		timing: Optional[Dict[str, int]] = None,
	):
		"""Initialize the activity agent.

		Args:
			config: Validated run configuration
			git: Local git collaborator bound to config.repo_path
			github: Hosting API collaborator
			engine: Mutation engine; shares ``rng`` and ``now`` when created here
			workspace: Working copy handle (defaults to config.repo_path)
			rng: Random source for selections and the review wait
			sleep: Suspension function used for the review wait and merge delay
			now: UTC clock
			timing: Overrides for Config.get_timing_config()
		"""
		self.config = config
		self.git = git
		self.github = github
		self.rng = rng or random.Random()
		self.now = now or (lambda: datetime.now(timezone.utc))
		self.engine = engine or MutationEngine(self.rng, self.now)
		self.workspace = workspace or WorkingCopy(config.repo_path)
		self.sleep = sleep
		self.timing = {**Config.get_timing_config(), **(timing or {})}

		self.state = Stage.IDLE
		self.branch: Optional[BranchHandle] = None
		self.plan: Optional[MutationPlan] = None
		self.pull_request: Optional[PullRequestHandle] = None
		logger.info(f"Activity agent initialized for {config.repo}")

	@classmethod
	def from_config(cls, config: RunConfig) -> "ActivityAgent":
		"""Build an agent with real git and GitHub clients.

		Raises:
			ConfigurationError: If the GitHub token is missing
		"""
		token = require_token()
		git = GitClient(config.repo_path, debug=config.debug)
		github = GithubClient(token=token)
		return cls(config, git, github)

	# -------- Run --------
	def run_once(self) -> RunOutcome:
		"""Execute one full run and report how it ended.

		Never raises for run failures; the failing stage and cause are
		carried in the returned RunOutcome.
		"""
		logger.info(f"Starting bot run at {self.now().isoformat()}")
		self.branch = None
		self.plan = None
		self.pull_request = None
		self.state = Stage.IDLE

		try:
			with self.workspace.acquire():
				self._stage(Stage.BRANCHING, self._create_branch)
				self._stage(Stage.MUTATING, self._mutate)
				self._stage(Stage.COMMITTING, self._commit)
				self._stage(Stage.PUSHING, self._push)
				self._stage(Stage.REQUESTING, self._open_pull_request)
				self._stage(Stage.WAITING, self._wait_for_review)
				self._stage(Stage.MERGING, self._merge)
				self._stage(Stage.CLEANING_UP, self._cleanup)
		except AgentError as e:
			return self._fail(str(e), code=e.code)
		except Exception as e:  # noqa: BLE001
			logger.exception(f"Unexpected error during {self.state.value}")
			return self._fail(f"Unexpected error: {e}", code="UNEXPECTED")

		self.state = Stage.IDLE
		outcome = RunOutcome.success(**self._progress())
		incr("run.success", repo=self.config.repo)
		logger.info(f"Bot run completed successfully at {self.now().isoformat()}")
		return outcome

	def _stage(self, stage: Stage, fn: Callable[[], Any]) -> Any:
		self.state = stage
		logger.info(f"[{stage.value}] {self.config.repo}")
		with StageTimer(stage.value, self.config.repo):
			return fn()

	def _fail(self, cause: str, code: str) -> RunOutcome:
		failed_at = self.state
		self.state = Stage.FAILED
		incr("run.failure", repo=self.config.repo, stage=failed_at.value, code=code)
		logger.error(f"Bot run failed at {failed_at.value}: {cause}")
		return RunOutcome.failed(failed_at, cause, code=code, **self._progress())

	def _progress(self) -> Dict[str, Any]:
		return {
			"branch": self.branch.name if self.branch else None,
			"pr_number": self.pull_request.number if self.pull_request else None,
			"files_changed": self.plan.file_count if self.plan else 0,
			"seeded": self.plan.seeded if self.plan else False,
		}

	def _stamp(self) -> str:
		return self.now().strftime(TIMESTAMP_FORMAT)

	# -------- Stages --------
	def resolve_primary_branch(self) -> str:
		"""Prefer ``main``, fall back to ``master``, fail otherwise."""
		for candidate in Config.PRIMARY_BRANCH_CANDIDATES:
			if self.git.branch_exists(candidate):
				return candidate
		raise VcsCommandError(
			f"No primary branch found (tried {', '.join(Config.PRIMARY_BRANCH_CANDIDATES)})",
			code="NO_PRIMARY_BRANCH",
		)

	def _create_branch(self) -> BranchHandle:
		primary = self.resolve_primary_branch()
		if self.config.debug:
			logger.debug(f"Using {primary} branch as base")
		self.git.checkout(primary)
		self.git.pull(primary)

		name = f"{Config.BRANCH_PREFIX}{int(self.now().timestamp())}"
		self.git.create_branch(name)
		self.branch = BranchHandle(name=name, primary=primary)
		logger.info(f"Created branch {name} from {primary}")
		return self.branch

	def _mutate(self) -> MutationPlan:
		root = self.workspace.path
		candidates = collect_candidates(root)
		seeded = False
		if not candidates:
			logger.info("No files found, creating default files")
			self._seed_repository(root)
			candidates = collect_candidates(root)
			seeded = True
			if not candidates:
				raise FilesystemError(f"No candidate files under {root} after seeding", code="NO_CANDIDATES", path=root)

		self.plan = self.engine.build_plan(root, candidates, self.config.file_range, self.config.line_range)
		self.plan.seeded = seeded
		if self.config.debug:
			for m in self.plan.mutations:
				logger.debug(f"Modified {m.path}: {m.edit_count} edits ({', '.join(s.value for s in m.strategies)})")
		return self.plan

	def _seed_repository(self, root: str) -> None:
		"""Write default files and publish them to the primary branch."""
		write_seed_files(root)
		self.git.add_all()
		self.git.commit(SEED_COMMIT_MESSAGE)
		self.git.push_head_to(self.branch.primary)

	def _commit(self) -> None:
		count = self.plan.file_count
		self.git.add_all()
		if not self.git.has_changes():
			raise VcsCommandError("Nothing to commit: mutation produced no changes", code="NOTHING_TO_COMMIT")
		message = f"Update {count} file{'' if count == 1 else 's'}"
		self.git.commit(message)
		logger.info(f"Committed: {message}")

	def _push(self) -> None:
		self.git.push(self.branch.name, set_upstream=True)
		logger.info(f"Pushed {self.branch.name}")

	def _open_pull_request(self) -> PullRequestHandle:
		if self.pull_request is not None:
			raise RemoteApiError(f"Pull request #{self.pull_request.number} already open for {self.branch.name}", code="DUPLICATE")
		title = f"Bot update {self._stamp()}"
		body = (
			"This is an automated PR created by the activity bot.\n\n"
			f"Timestamp: {self.now().isoformat()}"
		)
		pr = self.github.create_pull_request(
			self.config.owner,
			self.config.name,
			title,
			self.branch.name,
			self.branch.primary,
			body,
		)
		if pr is None or not pr.number:
			raise RemoteApiError("Pull request creation returned no handle", code="INVALID_RESPONSE")
		self.pull_request = pr
		return pr

	def _wait_for_review(self) -> int:
		wait_s = self.rng.randrange(self.timing["wait_min_s"], self.timing["wait_max_s"])
		logger.info(f"Waiting {wait_s} seconds before approving PR...")
		self.sleep(wait_s)
		return wait_s

	def _approve(self, number: int) -> None:
		# Reviewer-identity API path is unreliable; no approval record is created.
		logger.info(f"Skipping PR review approval for PR #{number}")

	def _merge(self) -> None:
		number = self.pull_request.number
		self._approve(number)
		self.sleep(self.timing["merge_delay_s"])
		self.github.merge_pull_request(
			self.config.owner,
			self.config.name,
			number,
			merge_method=Config.MERGE_METHOD,
			commit_title=f"Merged bot update PR #{number}",
		)

	def _cleanup(self) -> None:
		primary = self.branch.primary
		self.git.checkout(primary)
		self.git.delete_branch(self.branch.name, remote=True)
		self.git.pull(primary)
		logger.info(f"Deleted branch {self.branch.name} and returned to {primary}")


def main():
	"""CLI entry point for the activity agent."""
	parser = argparse.ArgumentParser(
		description="Activity agent - periodically opens and merges pull requests on one repository",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.activity_agent --config config.toml
  python -m agents.activity_agent --config config.toml --run-now
		"""
	)
	parser.add_argument("--config", "-c", default="config.toml", help="Path to the TOML config file")
	parser.add_argument("--run-now", dest="run_now", action="store_true", help="Run once immediately and exit")
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

	args = parser.parse_args()

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	try:
		config = load_run_config(args.config)
		if config.debug:
			logging.getLogger().setLevel(logging.DEBUG)
		logger.info(f"Starting activity agent with config: {config.model_dump()}")
		agent = ActivityAgent.from_config(config)
		scheduler = None if args.run_now else CronScheduler(config.cron_schedule, agent.run_once)
	except ConfigurationError as e:
		print(f"Error: {e}", file=sys.stderr)
		sys.exit(1)

	if args.run_now:
		print("Running bot once immediately...")
		outcome = agent.run_once()
		agent.github.close()
		if not outcome.ok:
			print(f"Error in bot run: {outcome.describe()}", file=sys.stderr)
			sys.exit(1)
		print("Bot run completed successfully")
		sys.exit(0)

	print(f"Bot started and will run on schedule: {config.cron_schedule}")
	print("Press Ctrl+C to stop")
	try:
		scheduler.run_forever()
	except KeyboardInterrupt:
		print("\nBot stopped by user", file=sys.stderr)
	finally:
		agent.github.close()
	sys.exit(0)


if __name__ == "__main__":
	main()
