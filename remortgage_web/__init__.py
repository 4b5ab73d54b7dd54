"""Flask front end for the remortgage comparator."""
