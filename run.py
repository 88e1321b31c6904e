from __future__ import annotations
import os
from barbershop import create_app
from barbershop.extensions import db

def main() -> None:
    flask_app = create_app()

    # local runs against sqlite need the tables before the first booking
    if os.environ.get("CREATE_TABLES", "0") in {"1", "true", "True"}:
        with flask_app.app_context():
            db.create_all()

    rules = sorted(rule.rule for rule in flask_app.url_map.iter_rules() if rule.endpoint != "static")
    flask_app.logger.info("Serving %d routes: %s", len(rules), ", ".join(rules))

    debug_enabled = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    flask_app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=debug_enabled)

if __name__ == "__main__":
    main()
