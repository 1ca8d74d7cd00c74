"""Development entrypoint: ``python app.py`` (settings picked by APP_ENV)."""

import os

from geo_attendance.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(
        host=os.getenv("FLASK_RUN_HOST", "127.0.0.1"),
        port=int(os.getenv("FLASK_RUN_PORT", "5000")),
        debug=app.config["DEBUG"],
        threaded=True,
    )
