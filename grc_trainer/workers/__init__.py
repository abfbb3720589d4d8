"""
Workers Module

Batch generation of the session library. Run with:
    python -m grc_trainer.workers.library_worker [worker_id] [total] [index]
"""
