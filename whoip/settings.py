"""
Initializes the Dynaconf settings object for whoip.
This module is the single source of truth for all configuration.

Values come from config/settings.toml and can be overridden with WHOIP_
prefixed environment variables, e.g. WHOIP_HTTP__TIMEOUT=10. The validators
supply defaults, so the package also runs without the settings file.
"""

from pathlib import Path
from dynaconf import Dynaconf, Validator

PROJECT_ROOT = Path(__file__).parent.parent

settings = Dynaconf(
    root_path=PROJECT_ROOT,
    settings_files=["config/settings.toml"],
    envvar_prefix="WHOIP",
    validators=[
        Validator("logging.level", default="INFO"),
        Validator("paths.data_dir", default=""),
        Validator("http.timeout", default=5.0, gt=0),
        Validator("http.total_timeout", default=15.0, gt=0),
        Validator("http.retry_attempts", default=2, gte=1),
        Validator("http.retry_min_wait", default=0.5, gte=0),
        Validator("http.retry_max_wait", default=4, gte=0),
        Validator("lookup.refresh_before_lookup", default=True, is_type_of=bool),
        Validator("refresh.show_progress", default=False, is_type_of=bool),
    ],
)
