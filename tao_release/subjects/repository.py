"""Release of a bare git repository: the tag is the artifact."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from ..git import GitClient
from ..models import Subject, SubjectMetadata
from ..shell import fatal
from .base import SubjectStrategy, SubjectType


class RepositoryStrategy(SubjectStrategy):
    subject_type = SubjectType.REPOSITORY

    def select_target(self) -> Subject:
        root = Path(self.options.root or os.getcwd()).resolve()
        try:
            name = GitClient(root, self.options.origin).get_repository_identifier()
        except (subprocess.CalledProcessError, ValueError) as err:
            fatal(f"Unable to fetch remote name from {root}: {err}")
        return Subject(name=name, path=root)

    def get_metadata(self) -> SubjectMetadata:
        name = self.state.require("subject").name
        return SubjectMetadata(name=name, repo_name=name)
