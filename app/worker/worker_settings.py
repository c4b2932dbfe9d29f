import os


def redis_dsn() -> str:
    return os.environ.get("REDIS_URL", "redis://localhost:6379/0")


class WorkerSettings:
    # Arq procura estes atributos na classe de settings
    from arq.connections import RedisSettings
    from arq.cron import cron

    from app.worker.job import check_subscription_expiry, sync_product_stock_job

    redis_settings = RedisSettings.from_dsn(redis_dsn())
    functions = [sync_product_stock_job]
    cron_jobs = [
        cron(check_subscription_expiry, hour={6}, minute={0}),
    ]

    @staticmethod
    def redis_dsn() -> str:
        # Mantém compatibilidade com o uso na API (enqueue)
        return redis_dsn()
