"""Services for Wine Pipeline."""
