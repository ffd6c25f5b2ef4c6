"""Badge catalog, awards and event-creation eligibility."""
