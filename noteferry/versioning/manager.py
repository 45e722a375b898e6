"""
Git versioning for migrated vaults.

This module keeps a local vault under version control so that every migration
run leaves an auditable commit behind.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import git
from git import Actor, InvalidGitRepositoryError, NoSuchPathError, Repo

from ..models import MigrationResult

GITIGNORE_TEMPLATE = """# noteferry vault
# Temporary files
*.tmp
*.temp

# Migration dry runs
{test_dir}/

# OS files
.DS_Store
Thumbs.db
"""


class VaultVersioner:
    """
    Manages Git operations for a migrated vault directory.
    """

    def __init__(self, repo_path: str = "vault", author_name: str = "noteferry",
                 author_email: str = "noteferry@localhost", test_dir: str = "migration-test"):
        """
        Initialize the vault versioner.

        Args:
            repo_path: Path to the vault (and Git repository)
            author_name: Name used for commits
            author_email: Email used for commits
            test_dir: Scratch directory of dry runs, kept out of the repository
        """
        self.repo_path = Path(repo_path)
        self.author = Actor(author_name, author_email)
        self.test_dir = test_dir
        self.repo: Optional[Repo] = None

        logging.info(f"Initialized VaultVersioner for: {self.repo_path}")

    def initialize_repository(self) -> bool:
        """
        Initialize a Git repository if it doesn't exist.

        Returns:
            True if the repository was initialized or already exists, False on error
        """
        try:
            if self._is_git_repository():
                logging.info("Git repository already exists")
                self.repo = Repo(self.repo_path)
                return True

            self.repo_path.mkdir(parents=True, exist_ok=True)
            self.repo = Repo.init(self.repo_path)

            gitignore_path = self.repo_path / ".gitignore"
            if not gitignore_path.exists():
                with open(gitignore_path, 'w', encoding='utf-8') as f:
                    f.write(GITIGNORE_TEMPLATE.format(test_dir=self.test_dir))

            # HEAD must exist before staged changes can be diffed against it
            self.repo.index.add([".gitignore"])
            self.repo.index.commit("Initial commit: Add .gitignore", author=self.author, committer=self.author)

            logging.info("Git repository initialized successfully")
            return True

        except (git.GitError, OSError) as e:
            logging.error(f"Failed to initialize Git repository: {e}")
            return False

    def _is_git_repository(self) -> bool:
        """Check if the path is already a Git repository."""
        try:
            if not self.repo_path.exists():
                return False
            Repo(self.repo_path)
            return True
        except (InvalidGitRepositoryError, NoSuchPathError):
            return False

    def stage_files(self, file_paths: List[str]) -> bool:
        """
        Stage files for commit.

        Args:
            file_paths: Paths to stage, absolute or relative to the vault

        Returns:
            True if all files were staged successfully, False otherwise
        """
        if not self.repo:
            logging.error("Repository not initialized")
            return False

        try:
            rel_paths = []
            for file_path in file_paths:
                rel_path = Path(file_path)
                if rel_path.is_absolute():
                    rel_path = rel_path.relative_to(self.repo_path.resolve())
                rel_paths.append(rel_path.as_posix())

            self.repo.index.add(rel_paths)
            logging.info(f"Staged {len(rel_paths)} files")
            return True

        except (git.GitError, OSError, ValueError) as e:
            logging.error(f"Failed to stage files: {e}")
            return False

    def commit_changes(self, message: str) -> bool:
        """
        Commit staged changes.

        Args:
            message: Commit message

        Returns:
            True if the commit was created or there was nothing to commit
        """
        if not self.repo:
            logging.error("Repository not initialized")
            return False

        try:
            if not self.repo.index.diff("HEAD"):
                logging.info("No changes to commit")
                return True

            commit = self.repo.index.commit(message, author=self.author, committer=self.author)
            logging.info(f"Created commit: {commit.hexsha[:8]} - {message.splitlines()[0]}")
            return True

        except (git.GitError, ValueError) as e:
            logging.error(f"Failed to commit changes: {e}")
            return False

    def stage_and_commit(self, file_paths: List[str], message: str) -> bool:
        """Stage files and commit them in one operation."""
        if self.stage_files(file_paths):
            return self.commit_changes(message)
        return False

    def create_migration_commit(self, result: MigrationResult) -> bool:
        """
        Commit every file of the vault after a migration run.

        Args:
            result: The result of the run, summarized in the commit message

        Returns:
            True if the commit was successful, False otherwise
        """
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        status = "completed" if result.success else "completed with errors"

        message = f"""Migration: {result.migrated_records} records, {result.migrated_trash} in trash

Migration {status} on {timestamp}

Statistics:
- {result.migrated_records} active records written
- {result.migrated_trash} trashed records written
- {len(result.errors)} errors
- {len(result.warnings)} warnings"""

        if result.backup_path:
            message += f"\n\nBackup: {result.backup_path}"

        all_files = []
        for file_path in self.repo_path.rglob("*"):
            rel_path = file_path.relative_to(self.repo_path)
            if not file_path.is_file() or rel_path.parts[0] in (".git", self.test_dir):
                continue
            all_files.append(rel_path.as_posix())

        return self.stage_and_commit(all_files, message)

    def get_commit_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Get the commit history for the repository.

        Args:
            limit: Maximum number of commits to return

        Returns:
            List of commit information dictionaries
        """
        if not self.repo:
            logging.error("Repository not initialized")
            return []

        try:
            return [
                {
                    'hash': commit.hexsha,
                    'short_hash': commit.hexsha[:8],
                    'message': commit.message.strip(),
                    'author': str(commit.author),
                    'date': commit.committed_datetime.isoformat(),
                    'files_changed': len(commit.stats.files)
                }
                for commit in self.repo.iter_commits(max_count=limit)
            ]
        except (git.GitError, ValueError) as e:
            logging.error(f"Failed to get commit history: {e}")
            return []

    def get_repository_status(self) -> Dict[str, Any]:
        """
        Get the current repository status.

        Returns:
            Dictionary with repository status information
        """
        if not self.repo:
            return {"error": "Repository not initialized"}

        try:
            return {
                'is_dirty': self.repo.is_dirty(),
                'untracked_files': len(self.repo.untracked_files),
                'modified_files': len(self.repo.index.diff(None)),
                'staged_files': len(self.repo.index.diff("HEAD")),
                'total_commits': len(list(self.repo.iter_commits())),
                'active_branch': self.repo.active_branch.name
            }
        except (git.GitError, TypeError, ValueError) as e:
            logging.error(f"Failed to get repository status: {e}")
            return {"error": str(e)}
