"""Faculty feedback portal: eligibility rules, rating normalization and the data layer around them."""
