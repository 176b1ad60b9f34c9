"""CampusSense environmental monitoring and threshold alerting."""
