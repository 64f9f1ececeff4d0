"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

# Schedule configuration
beat_schedule = {
    # Nightly learning pass: environmental profiles + workload baselines
    # for every athlete. Ingestion also queues per-athlete recomputes.
    'recompute-all-athletes': {
        'task': 'tasks.recompute_all_athletes',
        'schedule': crontab(hour=3, minute=0),  # 03:00 UTC daily
    },
}
