import os
from typing import Dict, Any

class Config:
	"""Process settings for the activity agent (environment driven)."""

	# GitHub Configuration
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	HTTP_RETRY_TOTAL = int(os.getenv("HTTP_RETRY_TOTAL", "3"))
	USER_AGENT = os.getenv("USER_AGENT", "repo-activity-agent/1.0")

	# Local git
	GIT_REMOTE = os.getenv("GIT_REMOTE", "origin")
	GIT_TIMEOUT_S = int(os.getenv("GIT_TIMEOUT_S", "120"))
	BRANCH_PREFIX = os.getenv("BRANCH_PREFIX", "bot-update-")
	PRIMARY_BRANCH_CANDIDATES = ("main", "master")

	# Review simulation (seconds); upper bound is exclusive
	REVIEW_WAIT_MIN_S = int(os.getenv("REVIEW_WAIT_MIN_S", "60"))
	REVIEW_WAIT_MAX_S = int(os.getenv("REVIEW_WAIT_MAX_S", "180"))
	MERGE_DELAY_S = int(os.getenv("MERGE_DELAY_S", "30"))
	MERGE_METHOD = os.getenv("MERGE_METHOD", "squash")

	# Mutation engine
	INDENT_UNIT = os.getenv("INDENT_UNIT", "    ")
	MAX_INDENT_UNITS = 3

	# Observability
	METRICS_ROOT = os.getenv("METRICS_ROOT", ".cache/activity_agent/metrics")
	METRICS_ENABLED = bool(int(os.getenv("METRICS_ENABLED", "0")))

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"retry_total": cls.HTTP_RETRY_TOTAL,
		}

	@classmethod
	def get_git_config(cls) -> Dict[str, Any]:
		return {
			"remote": cls.GIT_REMOTE,
			"timeout_s": cls.GIT_TIMEOUT_S,
		}

	@classmethod
	def get_timing_config(cls) -> Dict[str, int]:
		"""Get review wait and merge delay settings.

		Returns:
			Mapping with the wait window [min, max) and the pre-merge delay.
		"""
		return {
			"wait_min_s": cls.REVIEW_WAIT_MIN_S,
			"wait_max_s": cls.REVIEW_WAIT_MAX_S,
			"merge_delay_s": cls.MERGE_DELAY_S,
		}
