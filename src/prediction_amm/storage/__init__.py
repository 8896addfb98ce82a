"""SQLAlchemy persistence for pools, price history, markets and transactions."""
