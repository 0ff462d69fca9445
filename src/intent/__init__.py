"""Intent parsing, code generation and result handling.

The intent layer turns a free-text development intent into a classified `Intent`, executes it
(through the LLM when configured), and splits generated replies into code/AST/semantics sections.
"""
