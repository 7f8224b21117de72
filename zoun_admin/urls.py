"""
URL configuration for the admin GraphQL endpoint.
"""

from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from graphene_django.views import GraphQLView

from .config_proxy import get_setting
from .graphql.schema import schema

urlpatterns = [
    path(
        "graphql/",
        csrf_exempt(
            GraphQLView.as_view(
                schema=schema,
                graphiql=bool(get_setting("graphql_settings.enable_graphiql", False)),
            )
        ),
        name="graphql",
    ),
]
