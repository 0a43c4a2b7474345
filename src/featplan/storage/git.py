"""
Git object-store backend.

Keeps PLAN.md on an isolated branch built purely from plumbing commands, so
board edits never touch (or get touched by) the checked-out files. A write
is a pipeline of object-store writes followed by a single `update-ref`;
nothing is visible until that last step succeeds.
"""

import asyncio
import getpass
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .base import DocumentNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "featplan"


class GitCommandError(Exception):
	"""A git child process exited non-zero."""

	def __init__(self, args: list[str], returncode: int, stderr: str):
		self.args_list = args
		self.returncode = returncode
		self.stderr = stderr
		super().__init__(f"git {' '.join(args)} failed ({returncode}): {stderr}")


async def _run_git(
	args: list[str],
	cwd: Path,
	timeout: int = 30,
	input_data: Optional[str] = None,
	env: Optional[dict[str, str]] = None,
	strip: bool = True,
) -> tuple[str, str, int]:
	"""Run a git command and return (stdout, stderr, returncode)."""
	proc = await asyncio.create_subprocess_exec(
		"git", *args,
		stdin=asyncio.subprocess.PIPE if input_data is not None else asyncio.subprocess.DEVNULL,
		stdout=asyncio.subprocess.PIPE,
		stderr=asyncio.subprocess.PIPE,
		cwd=str(cwd),
		env={**os.environ, **env} if env else None,
	)
	stdin_bytes = input_data.encode("utf-8") if input_data is not None else None
	try:
		stdout, stderr = await asyncio.wait_for(proc.communicate(stdin_bytes), timeout=timeout)
	except asyncio.TimeoutError:
		proc.kill()
		return ("", f"git {args[0]} timed out after {timeout}s", -1)
	out = stdout.decode("utf-8")
	return (
		out.strip() if strip else out,
		stderr.decode("utf-8").strip(),
		proc.returncode or 0,
	)


async def resolve_actor_name(cwd: Path) -> str:
	"""git user.name for the workspace, falling back to the OS user."""
	try:
		stdout, _, rc = await _run_git(["config", "user.name"], cwd)
		if rc == 0 and stdout:
			return stdout
	except OSError as e:
		logger.debug(f"git unavailable for actor lookup: {e}")
	try:
		return getpass.getuser()
	except Exception:
		return "unknown"


class GitBackend:
	"""
	Stores the plan document on its own branch of the workspace repository.

	Usage:
		backend = GitBackend(Path("."), branch="featplan", path=".feature/PLAN.md")
		await backend.open()
		await backend.write_document(text)
		text = await backend.read_document()

	Writes are last-writer-wins unless compare_and_swap is set, in which case
	the ref update expects the parent it started from and the whole pipeline
	is retried when another writer got there first.
	"""

	name = "git"
	MAX_CAS_ATTEMPTS = 5

	def __init__(
		self,
		repo_root: Path,
		branch: str = DEFAULT_BRANCH,
		path: str = ".feature/PLAN.md",
		compare_and_swap: bool = False,
		timeout: int = 30,
	):
		self.repo_root = Path(repo_root)
		self.branch = branch
		self.path = path.replace("\\", "/")
		self.compare_and_swap = compare_and_swap
		self.timeout = timeout
		self._git_dir: Optional[Path] = None
		self._line_ready = False

	@property
	def ref(self) -> str:
		return f"refs/heads/{self.branch}"

	@property
	def watch_path(self) -> Path:
		git_dir = self._git_dir or (self.repo_root / ".git")
		return git_dir / "refs" / "heads" / self.branch

	async def _git(
		self,
		args: list[str],
		input_data: Optional[str] = None,
		env: Optional[dict[str, str]] = None,
		strip: bool = True,
	) -> str:
		"""Run git, raising GitCommandError with the captured stderr on failure."""
		stdout, stderr, rc = await _run_git(
			args, self.repo_root, self.timeout, input_data=input_data, env=env, strip=strip,
		)
		if rc != 0:
			raise GitCommandError(args, rc, stderr)
		return stdout

	async def open(self) -> None:
		"""Locate the git dir and make sure the storage branch exists."""
		if self._git_dir is None:
			self._git_dir = Path(await self._git(["rev-parse", "--absolute-git-dir"]))
		await self.ensure_line()

	async def branch_exists(self) -> bool:
		stdout, _, rc = await _run_git(
			["rev-parse", "--verify", "--quiet", self.ref], self.repo_root, self.timeout,
		)
		return rc == 0 and bool(stdout)

	async def ensure_line(self) -> None:
		"""
		Create the storage branch with one empty commit if it does not exist.

		Built from an empty tree with commit-tree/update-ref, so the working
		tree and index are never switched. Not safe to race with another
		process creating the same branch.
		"""
		if self._line_ready:
			return
		if await self.branch_exists():
			self._line_ready = True
			return

		empty_tree = await self._git(["mktree"], input_data="")
		commit = await self._git(
			["commit-tree", empty_tree, "-m", f"chore: init {self.branch} storage branch"],
		)
		# Empty old value: fail rather than clobber a branch created meanwhile
		await self._git(["update-ref", self.ref, commit, ""])
		self._line_ready = True
		logger.info(f"Created storage branch {self.branch} at {commit[:8]}")

	async def head(self) -> str:
		return await self._git(["rev-parse", "--verify", self.ref])

	async def tree(self) -> str:
		return await self._git(["rev-parse", "--verify", f"{self.ref}^{{tree}}"])

	async def read_document(self) -> str:
		"""Read the blob at `path` from the branch tip without touching the working tree."""
		if not await self.branch_exists():
			raise DocumentNotFoundError(f"Storage branch not found: {self.branch}")
		tree = await self.tree()
		entry = await self._git(["ls-tree", tree, "--", self.path])
		if not entry:
			raise DocumentNotFoundError(f"{self.path} not found on branch {self.branch}")
		# "<mode> blob <sha>\t<path>"
		blob = entry.split("\t", 1)[0].split()[2]
		return await self._git(["cat-file", "blob", blob], strip=False)

	async def write_document(self, content: str) -> None:
		"""Commit new document content onto the storage branch."""
		attempts = self.MAX_CAS_ATTEMPTS if self.compare_and_swap else 1
		for attempt in range(1, attempts + 1):
			if await self._write_once(content):
				return
			logger.info(f"Branch {self.branch} moved during write, retrying ({attempt}/{attempts})")
		raise GitCommandError(
			["update-ref", self.ref],
			1,
			f"branch {self.branch} kept changing; gave up after {attempts} attempts",
		)

	async def _write_once(self, content: str) -> bool:
		"""Run the commit pipeline once. Returns False on a compare-and-swap miss."""
		blob = await self._git(["hash-object", "-w", "--stdin"], input_data=content)
		# Base tree and parent must come from the same commit, or a writer
		# landing in between would have its files dropped by ours
		parent = await self.head()

		with tempfile.TemporaryDirectory(prefix="featplan-index-") as tmp:
			index_env = {"GIT_INDEX_FILE": str(Path(tmp) / "index")}
			await self._git(["read-tree", f"{parent}^{{tree}}"], env=index_env)
			await self._git(
				["update-index", "--add", "--cacheinfo", f"100644,{blob},{self.path}"],
				env=index_env,
			)
			new_tree = await self._git(["write-tree"], env=index_env)

		commit = await self._git(
			["commit-tree", new_tree, "-p", parent, "-m", f"feat: update {self.path}"],
		)

		try:
			await self._update_ref(commit, parent if self.compare_and_swap else None)
		except GitCommandError:
			if self.compare_and_swap and await self.head() != parent:
				return False
			raise
		logger.debug(f"{self.branch} -> {commit[:8]} ({self.path})")
		return True

	async def _update_ref(self, commit: str, expected: Optional[str]) -> None:
		"""Publish the new commit. The only step with a visible effect."""
		args = ["update-ref", self.ref, commit]
		if expected:
			args.append(expected)
		await self._git(args)
