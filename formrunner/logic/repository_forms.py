"""Published form definitions available to the runtime.

Forms are read from a directory of ``.json``, ``.yaml`` and ``.yml`` files,
one form per file. A file that cannot be read or does not describe a valid
form is logged and skipped so one bad definition cannot take the others down.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from formrunner.models.question import Form, FormDefinitionError, Question, parse_form

logger = logging.getLogger(__name__)


FORM_FILE_SUFFIXES = (".json", ".yaml", ".yml")


class FormNotFoundError(LookupError):
    def __init__(self, form_id: str) -> None:
        super().__init__(f"form not found: {form_id}")
        self.form_id = form_id


class UnknownQuestionError(LookupError):
    def __init__(self, form_id: str, question_id: str) -> None:
        super().__init__(f"question {question_id} not found in form {form_id}")
        self.form_id = form_id
        self.question_id = question_id


def read_form_file(path: Path) -> Form:
    """Parse one definition file; raises FormDefinitionError on any problem."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FormDefinitionError(f"cannot read {path}: {e}") from e
    try:
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise FormDefinitionError(f"cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise FormDefinitionError(f"{path} does not contain a form object")
    return parse_form(data)


class FormRepository:
    def __init__(self, forms: Optional[Iterable[Form]] = None) -> None:
        self._forms: Dict[str, Form] = {}
        for form in forms or ():
            self.add(form)

    @classmethod
    def from_directory(cls, directory: str | Path) -> "FormRepository":
        repo = cls()
        repo.load_directory(directory)
        return repo

    def load_directory(self, directory: str | Path) -> int:
        root = Path(directory)
        if not root.is_dir():
            logger.warning("forms_directory_missing path=%s", root)
            return 0
        loaded = 0
        for path in sorted(root.iterdir()):
            if path.suffix not in FORM_FILE_SUFFIXES or not path.is_file():
                continue
            try:
                form = read_form_file(path)
            except FormDefinitionError as e:
                logger.warning("form_definition_skipped path=%s error=%s", path, e)
                continue
            self.add(form)
            loaded += 1
        logger.info("forms_loaded path=%s count=%s", root, loaded)
        return loaded

    def add(self, form: Form) -> None:
        if form.id in self._forms:
            logger.warning("form_definition_replaced form_id=%s", form.id)
        self._forms[form.id] = form

    def get(self, form_id: str) -> Form:
        form = self._forms.get(form_id)
        if form is None:
            raise FormNotFoundError(form_id)
        return form

    def get_question(self, form_id: str, question_id: str) -> Question:
        form = self.get(form_id)
        question = form.question_by_id(question_id)
        if question is None:
            raise UnknownQuestionError(form_id, question_id)
        return question

    def ids(self) -> List[str]:
        return sorted(self._forms)

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._forms

    def __len__(self) -> int:
        return len(self._forms)


__all__ = [
    "FORM_FILE_SUFFIXES",
    "FormNotFoundError",
    "UnknownQuestionError",
    "read_form_file",
    "FormRepository",
]
