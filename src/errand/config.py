"""Application configuration.

``AppConfig`` fixes how an App routes, finds controllers and renders views.
It does not change after the App is built; per-request values live in
``errand.options``.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(view_dir="views", controller_package="myapp.controllers")
    """

    debug: bool = False

    # Routing
    default_controller: str = "index"
    default_page: str = "index"

    # Controllers
    controller_suffix: str = "Controller"
    controller_package: str | None = None  # Autoload: "<package>.<controller>" on lookup miss

    # Views
    view_dir: str | Path = "views"
    view_extension: str = "html"
    base_url: str = "/"
    autoescape: bool = True

    # Data
    echo: bool = False  # Log every SQL statement on the "errand.data" logger
