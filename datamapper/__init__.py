"""Business data mapper: schema-less documents to a unified relational schema."""
