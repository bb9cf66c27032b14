from datamapper.llms.llm import CompletionClient, DSPyCompletionClient, create_completion_client

__all__ = ["CompletionClient", "DSPyCompletionClient", "create_completion_client"]
