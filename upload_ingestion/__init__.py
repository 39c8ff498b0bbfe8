"""
upload_ingestion -- Synchronous side of the bulk upload pipeline.

Decodes an uploaded table, validates its header against the object type's
column rules, maps every data row to a NEW Work Item and persists the Job
and its Work Items in fixed-size batches.

Architecture:
    upload_ingestion/ is a top-level package above upload_kernel and
    upload_config.  upload_batch builds on it; nothing here imports from
    upload_batch.
"""
