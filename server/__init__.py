"""Reference estimation service for the scope estimator client."""
