"""formdesk: form builder API with validated submission ingestion."""
