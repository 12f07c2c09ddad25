import os

bind = f"0.0.0.0:{os.getenv('PORT', 8000)}"
# Sessions and websocket channels live in process memory, so one worker only
workers = 1
threads = int(os.getenv('WEB_THREADS', 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = int(os.getenv('GUNICORN_TIMEOUT', 30))
preload_app = False
