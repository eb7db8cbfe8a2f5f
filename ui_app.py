# ui_app.py
import datetime as dt

from flask import Flask, render_template, redirect, url_for, flash, request

import failure_cache
from bundle_config import load_config, describe
from db_processor import load_runs


def _cache_rows(cfg):
    today = dt.date.today()
    out = []
    for name in sorted(failure_cache.CACHE_FILES):
        cache = failure_cache.for_name(name, cfg.log_dir)
        rows = [
            {
                "key": key,
                "date": stamp,
                "age": cache.age_days(key, today),
                "retry": cache.is_expired(key, today),
            }
            for key, stamp in sorted(cache.entries.items(), key=lambda kv: kv[1], reverse=True)
        ]
        out.append({"name": name, "path": cache.path, "rows": rows})
    return out


def create_app(cfg=None):
    app = Flask(__name__)
    app.secret_key = "dev"  # for flash messages
    app.config["BUNDLE"] = cfg or load_config()

    @app.get("/")
    def index():
        cfg = app.config["BUNDLE"]
        # How many runs to show (default 10). Change via /?n=25 etc.
        try:
            limit = max(1, min(int(request.args.get("n", "10")), 200))
        except ValueError:
            limit = 10
        return render_template(
            "index.html",
            dataset=describe(cfg),
            runs=load_runs(cfg.log_dir)[:limit],
            caches=_cache_rows(cfg),
            limit=limit,
        )

    @app.post("/forget")
    def forget():
        cfg = app.config["BUNDLE"]
        name = request.form.get("cache", "")
        key = request.form.get("key", "")
        if name not in failure_cache.CACHE_FILES:
            flash(f"Unknown cache: {name}")
        elif failure_cache.for_name(name, cfg.log_dir).clear(key):
            flash(f"Removed {key} from {name}; it will be retried on the next run.")
        else:
            flash(f"{key} was not in {name}.")
        return redirect(url_for("index"))

    return app


if __name__ == "__main__":
    # pip install flask
    create_app().run(host="127.0.0.1", port=5000, debug=False)
