"""HTTP API for the CampusSense dashboard and Telegram webhook."""
