"""
Opportunity Hub
Opportunity and internship discovery API.

Architecture:
- PostgreSQL: Structured data (users, internships, opportunities, tracker, toolkits)
- MongoDB: Raw ingested postings kept for provenance
- Heuristics: Ingest normalization and fit scoring are plain Python
"""

__version__ = "1.0.0"
