"""Google Sheets record store."""
