"""Entry point for the quota observer API: creates Flask app and runs dev server.

The observer itself runs in the Celery worker:
    celery -A quota_observer.celery_app worker -Q quota_observer --concurrency 1
    celery -A quota_observer.celery_app beat
"""

from quota_observer import create_app

app = create_app()

if __name__ == "__main__":
    app.run(
        host="127.0.0.1",
        port=app.config.get("PORT", 8437),
        debug=True,
        use_reloader=True,
    )
