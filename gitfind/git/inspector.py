"""Repository inspection through the ``git`` command line."""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from ..logging import get_logger
from ..models import Branch, FsLocation, Location, NetLocation, RepoFacts

CommandRunner = Callable[..., Awaitable[str]]

_HEADS_PREFIX = "refs/heads/"
_PLACEHOLDER_DESCRIPTION = "Unnamed repository;"

logger = get_logger("git")


class CommandError(RuntimeError):
    """Raised when a git command cannot be run or exits unsuccessfully."""

    def __init__(self, args: Sequence[str], message: str, returncode: Optional[int] = None) -> None:
        super().__init__(f"{' '.join(args)}: {message}")
        self.args_list = list(args)
        self.returncode = returncode


class InspectionError(RuntimeError):
    """Raised when repository facts cannot be extracted from a location."""


class GitInspector:
    """Turns locations into :class:`RepoFacts` by querying git."""

    def __init__(self, runner: CommandRunner | None = None, *, git: str = "git") -> None:
        self._runner = runner or self._default_runner
        self._git = git

    async def is_repo(self, directory: Path) -> bool:
        """Cheap probe telling whether ``directory`` is a usable git directory."""
        try:
            await self._git_cmd(directory, "rev-parse", "--git-dir")
        except CommandError as exc:
            logger.debug("Not a git repository %s: %s", directory, exc)
            return False
        return True

    async def inspect(self, location: Location) -> RepoFacts:
        """Return the facts for ``location`` or raise :class:`InspectionError`."""
        if isinstance(location, FsLocation):
            return await self._inspect_git_dir(location.directory)
        if isinstance(location, NetLocation):
            return await self._inspect_address(location.address)
        raise TypeError(f"Unsupported location: {location!r}")

    # ------------------------------------------------------------------
    # Internals

    async def _inspect_address(self, address: str) -> RepoFacts:
        tmp = tempfile.TemporaryDirectory(prefix="gitfind-")
        try:
            clone_dir = Path(tmp.name) / "repo.git"
            try:
                await self._run(
                    [self._git, "clone", "--bare", "--quiet", "--", address, str(clone_dir)],
                    env=_non_interactive_env(),
                )
            except CommandError as exc:
                raise InspectionError(f"Failed to clone {address}: {exc}") from exc
            return await self._inspect_git_dir(clone_dir)
        finally:
            # rmtree of a bare clone blocks.
            await asyncio.to_thread(tmp.cleanup)

    async def _inspect_git_dir(self, git_dir: Path) -> RepoFacts:
        try:
            remotes = await self._remotes(git_dir)
            heads = await self._heads(git_dir)
            branches: Dict[str, Branch] = {}
            for name, leaf in heads.items():
                roots = await self._roots(git_dir, leaf)
                branches[name] = Branch(roots=frozenset(roots), leaf=leaf)
        except CommandError as exc:
            raise InspectionError(f"Failed to inspect {git_dir}: {exc}") from exc
        description = await asyncio.to_thread(_read_description, git_dir)
        return RepoFacts(
            description=description,
            remotes=remotes,
            branches=branches,
        )

    async def _remotes(self, git_dir: Path) -> Dict[str, str]:
        output = await self._git_cmd(git_dir, "remote", "-v")
        remotes: Dict[str, str] = {}
        for line in output.splitlines():
            if not line.strip():
                continue
            fields = line.split()
            if len(fields) < 2:
                raise InspectionError(f"Malformed remote line in {git_dir}: {line!r}")
            if len(fields) > 2 and fields[2] != "(fetch)":
                continue
            remotes[fields[0]] = fields[1]
        return remotes

    async def _heads(self, git_dir: Path) -> Dict[str, str]:
        output = await self._git_cmd(
            git_dir,
            "for-each-ref",
            "--format=%(objectname) %(refname)",
            _HEADS_PREFIX,
        )
        heads: Dict[str, str] = {}
        for line in output.splitlines():
            if not line.strip():
                continue
            fields = line.split()
            if len(fields) != 2:
                raise InspectionError(f"Malformed ref line in {git_dir}: {line!r}")
            leaf, ref = fields
            if not ref.startswith(_HEADS_PREFIX):
                raise InspectionError(f"Unexpected ref {ref!r} in {git_dir}")
            heads[ref[len(_HEADS_PREFIX):]] = leaf
        return heads

    async def _roots(self, git_dir: Path, leaf: str) -> List[str]:
        output = await self._git_cmd(git_dir, "rev-list", "--max-parents=0", leaf, "--")
        roots = [line.strip() for line in output.splitlines() if line.strip()]
        if not roots:
            raise InspectionError(f"No root commits found for {leaf} in {git_dir}")
        return roots

    async def _git_cmd(self, git_dir: Path, *args: str) -> str:
        return await self._run([self._git, f"--git-dir={git_dir}", *args])

    async def _run(self, args: Sequence[str], *, env: Mapping[str, str] | None = None) -> str:
        return await self._runner(list(args), env=env)

    @staticmethod
    async def _default_runner(
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
    ) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(env) if env is not None else None,
            )
        except OSError as exc:
            raise CommandError(args, str(exc)) from exc
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise CommandError(args, message or f"exit status {process.returncode}", process.returncode)
        return stdout.decode("utf-8", errors="replace")


def _read_description(git_dir: Path) -> Optional[str]:
    try:
        text = (git_dir / "description").read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise InspectionError(f"Failed to read description in {git_dir}: {exc}") from exc
    text = text.strip()
    if not text or text.startswith(_PLACEHOLDER_DESCRIPTION):
        return None
    return text


def _non_interactive_env() -> Dict[str, str]:
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["GCM_INTERACTIVE"] = "never"
    env.setdefault("GIT_SSH_COMMAND", "ssh -o BatchMode=yes")
    return env


__all__ = ["CommandError", "CommandRunner", "GitInspector", "InspectionError"]
