"""
upload_batch -- Background processing of uploaded Jobs.

Drives the Work Items of a Job through a per-object-type handler, persists
outcomes in batches and rolls the Job status up from its Work Items.  Jobs
arrive through the in-process JobDispatcher.

Architecture:
    upload_batch/ depends on upload_ingestion (types, store, batch writer)
    and upload_kernel.  Nothing in upload_ingestion imports from here.

Invariants:
    - COMPLETED Work Items are never processed again.
    - One running pass per Job within a process.
    - Clock injection for every timestamp.
"""
