"""subscriptions/ -- Subscriber -> channel relationship store."""
