"""Expression DSL used by string validators.

- Lexer: tokenizes expression strings
- Parser: builds an AST from tokens
- Evaluator: evaluates the AST against ``field``/``model`` variables
- FunctionRegistry: functions callable from expressions
"""

from fieldforge.expressions.evaluator import (
    CompiledExpression,
    EvaluationContext,
    EvaluationError,
    Evaluator,
    evaluate,
    evaluate_bool,
    to_bool,
)
from fieldforge.expressions.functions import (
    FunctionCategory,
    FunctionDefinition,
    FunctionRegistry,
)
from fieldforge.expressions.lexer import Lexer, LexerError, Token, TokenType
from fieldforge.expressions.parser import (
    ASTNode,
    ArrayLiteral,
    BinaryOp,
    FunctionCall,
    Identifier,
    IndexAccess,
    Literal,
    MemberAccess,
    ParseError,
    Parser,
    UnaryOp,
    parse,
)

__all__ = [
    # Evaluator
    "CompiledExpression",
    "EvaluationContext",
    "EvaluationError",
    "Evaluator",
    "evaluate",
    "evaluate_bool",
    "to_bool",
    # Functions
    "FunctionCategory",
    "FunctionDefinition",
    "FunctionRegistry",
    # Lexer
    "Lexer",
    "LexerError",
    "Token",
    "TokenType",
    # Parser
    "ASTNode",
    "ArrayLiteral",
    "BinaryOp",
    "FunctionCall",
    "Identifier",
    "IndexAccess",
    "Literal",
    "MemberAccess",
    "ParseError",
    "Parser",
    "UnaryOp",
    "parse",
]
