"""
Stack Detection
===============

Reads ``package.json`` in the project directory to work out which framework,
database, ORM, auth provider, UI kit and payment provider the project uses.
Also derives the stable project key used to look up persisted state.
"""

import hashlib
import json
import logging
import re
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class StackConfig:
    framework: str = "nextjs"
    database: str = "supabase"
    orm: str = "drizzle"
    auth: str = "supabase"
    ui: str = "shadcn"
    payments: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "StackConfig":
        data = data or {}
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


# First match wins, in order
FRAMEWORKS = [("next", "nextjs"), ("@remix-run/react", "remix"), ("react", "react"),
              ("vue", "vue"), ("svelte", "svelte")]
ORMS = [("drizzle-orm", "drizzle"), ("prisma", "prisma"), ("typeorm", "typeorm"),
        ("mongoose", "mongoose")]
DATABASES = [("@supabase/supabase-js", "supabase"), ("@planetscale/database", "planetscale"),
             ("firebase", "firebase"), ("pg", "postgres"), ("mysql2", "mysql"),
             ("mongodb", "mongodb")]
AUTH_PROVIDERS = [("@supabase/auth-helpers-nextjs", "supabase"), ("@supabase/supabase-js", "supabase"),
                  ("@clerk/nextjs", "clerk"), ("next-auth", "next-auth"), ("@auth/core", "authjs"),
                  ("firebase", "firebase")]
UI_KITS = [("@radix-ui/react-slot", "shadcn"), ("@chakra-ui/react", "chakra"),
           ("@mui/material", "mui"), ("antd", "antd")]
PAYMENTS = [("stripe", "stripe"), ("@paypal/react-paypal-js", "paypal"), ("square", "square")]


def _first_match(deps: dict, table: list[tuple[str, str]]) -> Optional[str]:
    for package, value in table:
        if package in deps:
            return value
    return None


def detect_stack(project_dir: Path) -> StackConfig:
    """Detect the stack from package.json, falling back to the defaults."""
    stack = StackConfig()
    package_json = Path(project_dir) / "package.json"
    if not package_json.exists():
        return stack

    try:
        pkg = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", package_json, e)
        return stack

    deps = {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}

    stack.framework = _first_match(deps, FRAMEWORKS) or stack.framework
    stack.orm = _first_match(deps, ORMS) or stack.orm
    stack.database = _first_match(deps, DATABASES) or stack.database
    stack.auth = _first_match(deps, AUTH_PROVIDERS) or stack.auth
    if (Path(project_dir) / "components" / "ui").exists():
        stack.ui = "shadcn"
    else:
        stack.ui = _first_match(deps, UI_KITS) or stack.ui
    stack.payments = _first_match(deps, PAYMENTS)
    return stack


def project_key(project_dir: Path) -> str:
    """
    Stable 16-character key for a project directory.

    Uses the git remote URL when the directory is a git checkout with a
    remote, so clones of the same repository share a key; otherwise the
    resolved directory path.
    """
    project_dir = Path(project_dir)
    source = str(project_dir.resolve())

    git_config = project_dir / ".git" / "config"
    if git_config.exists():
        try:
            match = re.search(r"url = (.+)", git_config.read_text(encoding="utf-8"))
            if match:
                source = match.group(1).strip()
        except OSError as e:
            logger.debug("Ignoring unreadable git config: %s", e)

    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:16]
