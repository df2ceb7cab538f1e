"""
Core building blocks: chunking, lexical index, knowledge graph, and the
embedding and vector store adapters.
"""
