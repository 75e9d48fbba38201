import multiprocessing

# Gunicorn Production Configuration
# Carts live in process memory (one TerminalRegistry per worker), so a
# terminal must keep talking to the same worker: run a single worker and
# scale with threads.
workers = 1
threads = max(4, multiprocessing.cpu_count() * 2)
worker_class = 'gthread'

# Resilience
timeout = 120
keepalive = 5

# Logging
accesslog = '-'       # Stdout
errorlog = '-'        # Stderr
loglevel = 'info'
capture_output = True
