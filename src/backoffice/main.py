from __future__ import annotations

import logging

from backoffice.application.container import build_container
from backoffice.config import get_app_paths, load_settings
from backoffice.logging_config import setup_logging
from backoffice.ui.app import App


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    settings = load_settings()
    container = build_container(settings, session_path=paths.session_path)

    logging.getLogger(__name__).info("startup api=%s", settings.base_url)
    app = App(container, exports_dir=str(paths.exports_dir), logs_dir=str(paths.logs_dir))
    app.mainloop()


if __name__ == "__main__":
    main()
