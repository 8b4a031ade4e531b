"""Form runtime engine and stateless runtime API.

The engine (`formrunner.logic`) validates answers, resolves visibility and
branching, pipes answers into text, evaluates calculator formulas and drives
a respondent through a form with autosave and resume. The FastAPI app built
by `create_app` exposes the stateless parts of the engine to thin clients.
"""

from __future__ import annotations

from formrunner.main import create_app

__all__ = ["create_app"]
