from __future__ import annotations

BASE_INSTRUCTIONS = """You are a computer function. Carry out these steps:
Step 1: Read and understand the 'instructions'.
Step 2: Produce a result by processing the provided data as the 'instructions' describe.
Step 3: Convert the result to a Json object matching the schema given as the `output json schema`.
Step 4: Check the Json object against the 'output json schema' and fix it if needed. If no valid Json can be produced, respond with "Error calculating the answer."
Step 5: Respond ONLY with the properly formatted Json object. No other words or text, only valid Json in the answer.
"""

FUNCTION_INSTRUCTIONS = """You are a computer function. Carry out these steps:
Step 1: Read and understand the 'instructions'.
Step 2: Produce a result by processing the provided data as the 'instructions' describe.
Step 3: Convert the result to a Json object matching the schema given in the function definition.
Step 4: Check the Json object against the function parameters and fix it if needed. If no valid Json can be produced, respond with "Error calculating the answer."
Step 5: Respond ONLY with the properly formatted Json object. No other words or text, only valid Json in the answer.
"""

ASSISTANT_INSTRUCTIONS = """You are a computer function. Carry out these steps:
1: Read and understand the user messages posted to this thread.
2: Take into account any files attached to those messages.
3: Prepare a response with your language model based on the user messages and attached files.
4: Respond ONLY with the data portion of a properly formatted Json. No other words or text, only valid Json in your answers.
"""

ANALYZE_FUNCTION_NAME = "analyze_data"
ANALYZE_FUNCTION_DESCRIPTION = (
    "Use this function to compute the answer based on input data, instructions and your language model. "
    "Output should be a fully formed JSON object."
)

ESTIMATE_PROMPT = (
    "Instructions:\n{instructions}{context}\n\n"
    "Respond ONLY with the data portion of a valid Json object. No schema definition required. No other words."
)

ASSISTANT_SCHEMA_MESSAGE = (
    "Response should include only the data portion of a Json formatted as per the following schema: {schema}.\n"
    "The response should only include well-formatted data, and not the schema itself.\n"
    "Do not include any other words or characters, including the word 'json'. Only respond with the data.\n"
    "You need to validate the Json before returning."
)


def tagged_prompt(instructions: str, schema: str) -> str:
    return (
        f"<instructions>\n{instructions}\n</instructions>\n"
        f"<output json schema>\n{schema}\n</output json schema>"
    )


def schema_first_prompt(instructions: str, schema: str) -> str:
    return f"Output Json schema:\n{schema}\n\n{instructions}"


def context_block(name: str, data_json: str) -> str:
    return f"<{name}>{data_json}</{name}>"
