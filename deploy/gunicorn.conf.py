bind = "127.0.0.1:8000"
# The live store snapshot and summary cache are per process.
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
