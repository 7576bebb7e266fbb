"""EML metadata transformation."""
