"""
Configuration test fixtures for the test suite.
"""

# =============================================================================
# Conversion Configuration Fixtures
# =============================================================================

SAMPLE_CONFIG = {
    "conversion": {
        "namespace": "http://example.org/testmodel#",
        "max_workers": 4,
        "max_in_flight_queries": 8,
        "fetch_batch_size": 250,
        "show_progress": True,
        "indirection_overrides": {
            "Company,Contractor": "company_contractor"
        }
    },
    "database": {
        "connect_retries": 5,
        "retry_wait_seconds": 0.5
    },
    "logging": {
        "level": "DEBUG",
        "file": "logs/conversion.log",
        "format": "json",
        "max_mb": 5,
        "backup_count": 2
    }
}

MINIMAL_CONFIG = {
    "conversion": {}
}
