SUMMARY_PROMPT = """Summarize the following article in 2-3 sentences. Make it engaging and capture the essence of the content:

{content}"""

RELATED_TOPICS_PROMPT = """Based on this article content, suggest 5 related topic ideas for future articles.
Respond with a JSON object in this format: {{"topics": ["title", ...]}}

{content}"""

WRITING_QUALITY_PROMPT = """Analyze this article for writing quality. Rate it on a scale of 1-10 and provide brief, constructive feedback focusing on strengths and areas for improvement:

{content}

Respond with a JSON object in this format: {{"score": number, "feedback": "feedback text"}}"""
