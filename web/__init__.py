"""
Web layer for the deal ledger: FastAPI app and routers.
"""
