"""
Tools
Argument shapes, handlers and definitions for the tools exposed over JSON-RPC.

``call_tool`` validates the raw arguments against the tool's model, then
hands the handler a typed object and the X API client. Handlers return the
``{"success": ...}`` envelope and let ``XError`` propagate; ``call_tool``
folds those into a failure envelope.
"""
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Type

from pydantic import BaseModel, ValidationError

from .client import SearchTweetsParams, XClient
from .errors import ArgumentError, UnknownToolError, XError
from .logger import logger
from .utils import clamp_max_results

MAX_RESULTS_LIMIT = 100
SEARCH_MIN_RESULTS = 10
TIMELINE_MIN_RESULTS = 5
DEFAULT_MAX_RESULTS = 10


class GetUserArgs(BaseModel):
    identifier: str
    is_user_id: bool = False


class PostTweetArgs(BaseModel):
    text: str
    reply_to: Optional[str] = None


class SearchTweetsArgs(BaseModel):
    query: str
    max_results: int = DEFAULT_MAX_RESULTS
    include_users: bool = False
    include_metrics: bool = False


class GetTweetArgs(BaseModel):
    tweet_id: str


class GetUserTweetsArgs(BaseModel):
    identifier: str
    is_user_id: bool = False
    max_results: int = DEFAULT_MAX_RESULTS


def _not_found(what: str) -> Dict[str, Any]:
    return {'success': False, 'error': f'{what} not found'}


def get_user(args: GetUserArgs, client: XClient) -> Dict[str, Any]:
    """Get user information by username or user ID."""
    if args.is_user_id:
        user = client.get_user_by_id(args.identifier)
    else:
        user = client.get_user_by_username(args.identifier)

    if user is None:
        return _not_found('User')
    return {'success': True, 'user': user}


def post_tweet(args: PostTweetArgs, client: XClient) -> Dict[str, Any]:
    """Post a new tweet, optionally as a reply."""
    tweet = client.post_tweet(args.text, reply_to=args.reply_to)
    logger.info('Posted tweet id=%s', tweet.get('id'))
    return {'success': True, 'tweet': tweet}


def search_tweets(args: SearchTweetsArgs, client: XClient) -> Dict[str, Any]:
    """Search recent tweets; the optional flags widen the field selection."""
    tweet_fields = ['id', 'text', 'author_id', 'created_at']
    user_fields: List[str] = []
    expansions: List[str] = []

    if args.include_metrics:
        tweet_fields.append('public_metrics')
    if args.include_users:
        user_fields.extend(['id', 'name', 'username'])
        expansions.append('author_id')

    params = SearchTweetsParams(
        query=args.query,
        max_results=clamp_max_results(args.max_results, SEARCH_MIN_RESULTS, MAX_RESULTS_LIMIT),
        tweet_fields=tweet_fields,
        user_fields=user_fields or None,
        expansions=expansions or None,
    )
    tweets = client.search_tweets(params)
    return {'success': True, 'tweets': tweets, 'count': len(tweets)}


def get_tweet(args: GetTweetArgs, client: XClient) -> Dict[str, Any]:
    """Get a specific tweet by ID."""
    tweet = client.get_tweet(args.tweet_id)
    if tweet is None:
        return _not_found('Tweet')
    return {'success': True, 'tweet': tweet}


def get_user_tweets(args: GetUserTweetsArgs, client: XClient) -> Dict[str, Any]:
    """Get a user's recent tweets, resolving a username to an ID first."""
    if args.is_user_id:
        user_id = args.identifier
    else:
        user = client.get_user_by_username(args.identifier)
        if user is None:
            return _not_found('User')
        user_id = user['id']

    max_results = clamp_max_results(args.max_results, TIMELINE_MIN_RESULTS, MAX_RESULTS_LIMIT)
    tweets = client.get_user_tweets(user_id, max_results=max_results)
    return {'success': True, 'tweets': tweets, 'count': len(tweets), 'user_id': user_id}


class ToolDefinition(NamedTuple):
    """Name, description and JSON Schema advertised by ``tools/list``."""
    name: str
    description: str
    input_schema: Dict[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return {'name': self.name, 'description': self.description, 'inputSchema': self.input_schema}


class Tool(NamedTuple):
    definition: ToolDefinition
    args_model: Type[BaseModel]
    handler: Callable[[Any, XClient], Dict[str, Any]]


def _identifier_schema(max_results_description: Optional[str] = None) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        'identifier': {
            'type': 'string',
            'description': 'Username (without @) or user ID',
        },
        'is_user_id': {
            'type': 'boolean',
            'description': 'Whether the identifier is a user ID (true) or username (false)',
            'default': False,
        },
    }
    if max_results_description:
        properties['max_results'] = {
            'type': 'integer',
            'description': max_results_description,
            'default': DEFAULT_MAX_RESULTS,
            'minimum': TIMELINE_MIN_RESULTS,
            'maximum': MAX_RESULTS_LIMIT,
        }
    return {'type': 'object', 'properties': properties, 'required': ['identifier']}


TOOLS: Dict[str, Tool] = {
    'get_user': Tool(
        ToolDefinition(
            name='get_user',
            description='Get user information by username or user ID',
            input_schema=_identifier_schema(),
        ),
        GetUserArgs,
        get_user,
    ),
    'post_tweet': Tool(
        ToolDefinition(
            name='post_tweet',
            description='Post a new tweet',
            input_schema={
                'type': 'object',
                'properties': {
                    'text': {'type': 'string', 'description': 'The text content of the tweet'},
                    'reply_to': {'type': 'string', 'description': 'Optional tweet ID to reply to'},
                },
                'required': ['text'],
            },
        ),
        PostTweetArgs,
        post_tweet,
    ),
    'search_tweets': Tool(
        ToolDefinition(
            name='search_tweets',
            description='Search for recent tweets',
            input_schema={
                'type': 'object',
                'properties': {
                    'query': {'type': 'string', 'description': 'Search query'},
                    'max_results': {
                        'type': 'integer',
                        'description': 'Maximum number of results (default: 10, max: 100)',
                        'default': DEFAULT_MAX_RESULTS,
                        'minimum': SEARCH_MIN_RESULTS,
                        'maximum': MAX_RESULTS_LIMIT,
                    },
                    'include_users': {
                        'type': 'boolean',
                        'description': 'Include user information in results',
                        'default': False,
                    },
                    'include_metrics': {
                        'type': 'boolean',
                        'description': 'Include tweet metrics',
                        'default': False,
                    },
                },
                'required': ['query'],
            },
        ),
        SearchTweetsArgs,
        search_tweets,
    ),
    'get_tweet': Tool(
        ToolDefinition(
            name='get_tweet',
            description='Get a specific tweet by ID',
            input_schema={
                'type': 'object',
                'properties': {'tweet_id': {'type': 'string', 'description': 'The tweet ID'}},
                'required': ['tweet_id'],
            },
        ),
        GetTweetArgs,
        get_tweet,
    ),
    'get_user_tweets': Tool(
        ToolDefinition(
            name='get_user_tweets',
            description="Get a user's recent tweets",
            input_schema=_identifier_schema('Maximum number of tweets to retrieve (default: 10, max: 100)'),
        ),
        GetUserTweetsArgs,
        get_user_tweets,
    ),
}


def list_tools() -> List[Dict[str, Any]]:
    return [tool.definition.to_json() for tool in TOOLS.values()]


def decode_arguments(model: Type[BaseModel], arguments: Any) -> BaseModel:
    """Validate raw JSON arguments into a tool's argument model."""
    if arguments is None:
        arguments = {}
    try:
        return model.model_validate(arguments)
    except ValidationError as e:
        raise ArgumentError(f'Invalid arguments: {e}') from e


def call_tool(name: str, arguments: Any, client: XClient) -> Dict[str, Any]:
    """
    Run a tool and return its envelope.

    Failures never raise; they come back as ``{"success": False, "error": "..."}``.
    """
    logger.info('Calling tool %s', name)
    try:
        tool = TOOLS.get(name)
        if tool is None:
            raise UnknownToolError(name)
        args = decode_arguments(tool.args_model, arguments)
        return tool.handler(args, client)
    except XError as e:
        logger.warning('Tool %s failed: %s', name, e)
        return {'success': False, 'error': str(e)}
    except Exception as e:
        logger.exception('Unexpected error in tool %s', name)
        return {'success': False, 'error': f'Error: {e}'}
