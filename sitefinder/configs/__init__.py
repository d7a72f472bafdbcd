# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Configuration for sitefinder"""

from pathlib import Path

from dynaconf import Dynaconf, Validator

PACKAGE_ROOT = Path(__file__).resolve().parent.parent

# Loaded in this order, relative to the package root.
SETTINGS_FILES = [
    "configs/default.toml",
    "configs/development.toml",
    "configs/production.toml",
    "configs/ci.toml",
    "configs/testing.toml",
]

_validators = [
    Validator("deployment.canary", is_type_of=bool),
    Validator("logging.format", is_in=["mozlog", "pretty"]),
    Validator("logging.level", is_in=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    Validator("logging.can_propagate", is_type_of=bool),
    Validator("logging.format", eq="mozlog", env=["production"]),
    Validator("metrics.dev_logger", is_type_of=bool),
    Validator("metrics.host", is_type_of=str),
    Validator("metrics.port", gte=0, is_type_of=int),
    Validator("sentry.env", is_in=["prod", "stage", "dev"]),
    Validator("sentry.mode", is_in=["disabled", "release", "debug"]),
    Validator("sentry.traces_sample_rate", gte=0, lte=1),
    Validator("probe.max_concurrent_tasks", is_type_of=int, gte=1, lte=100, must_exist=True),
    # May be smaller than `max_concurrent_tasks` to cap browser memory.
    Validator("probe.max_pool_size", is_type_of=int, gte=1, lte=100, must_exist=True),
    # Hard deadline of a single navigation. Two minutes is more than any page should take.
    Validator("probe.navigation_timeout_sec", is_type_of=float, gt=0, lte=120.0, must_exist=True),
    Validator("probe.screenshot_max_bytes", is_type_of=int, gt=0),
    Validator("probe.screenshot_quality", is_type_of=int, gte=1, lte=100),
    Validator("probe.stream_max_pending_records", is_type_of=int, gte=1),
    Validator(
        "probe.acquire_backoff_initial_sec",
        "probe.acquire_backoff_max_sec",
        is_type_of=float,
        gt=0,
        must_exist=True,
    ),
    Validator("probe.viewport_width", "probe.viewport_height", is_type_of=int, gt=0),
    Validator("probe.wait_until", is_in=["load", "domcontentloaded", "networkidle", "commit"]),
    Validator("probe.headless", is_type_of=bool),
    Validator("probe.browser_args", is_type_of=list),
    Validator("probe.tld_list_path", is_type_of=str, must_exist=True),
    Validator("words.path", is_type_of=str, must_exist=True),
    Validator("words.min_length", "words.max_length", is_type_of=int, gte=1),
    Validator("aggregator.sweep_interval_sec", gt=0),
    Validator("aggregator.watchdog_timeout_sec", gt=0),
    Validator("client.base_url", is_type_of=str, must_exist=True),
    Validator("client.connect_timeout_sec", "client.read_timeout_sec", gt=0),
    # A DNS label is at most 63 characters long.
    Validator("web.api.v1.keyword_character_max", is_type_of=int, gt=0, lte=63),
]

# `root_path` = The package directory, so settings load from any working directory.
# `envvar_prefix` = Export envvars with `export SITEFINDER_FOO=bar`.
# `settings_files` = Load these files in the order.
# `environments` = Enable layered environments such as `development`, `production`, `testing` etc.
# `merge_enabled` = Deep merge the tables of an environment over the `default` ones.
# `env_switcher` = Switch environments by `export SITEFINDER_ENV=production`. Default: `development`.
# `validators` = Define validators for sitefinder settings.

settings = Dynaconf(
    root_path=str(PACKAGE_ROOT),
    envvar_prefix="SITEFINDER",
    settings_files=SETTINGS_FILES,
    environments=True,
    merge_enabled=True,
    env_switcher="SITEFINDER_ENV",
    validators=_validators,
)
