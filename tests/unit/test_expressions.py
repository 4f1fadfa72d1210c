"""
Unit tests for template expansion and value resolution.
"""

import pytest


@pytest.fixture
def web():
    """A container with an allocated http endpoint and a bound parameter."""
    from appmodel.endpoints import declare_endpoint
    from appmodel.model import ContainerResource
    from appmodel.parameters import ParameterStore

    resource = ContainerResource("web")
    declare_endpoint(resource, "http", target_port=8080).allocate("localhost", 5000)
    declare_endpoint(resource, "admin", target_port=9090)
    password = ParameterStore({"Parameters:pass": "s3cret"}).declare("pass", secret=True)
    return resource, password


class TestRunValueResolver:
    """Test run-mode resolution."""

    def test_expand_endpoint_fields(self, web):
        """Test every endpoint field resolves from the allocation."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ReferenceExpression, create_value_resolver

        resource, _ = web
        resolver = create_value_resolver(ExecutionContext.run())
        expression = ReferenceExpression(
            "{http.scheme}|{http.host}|{http.port}|{http.url}|{http.targetPort}", resource
        )

        assert resolver.expand(expression) == "http|localhost|5000|http://localhost:5000|8080"

    def test_expand_parameter(self, web):
        """Test parameter placeholders resolve to the configured value."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ReferenceExpression, create_value_resolver

        resource, password = web
        resolver = create_value_resolver(ExecutionContext.run())
        expression = ReferenceExpression("Key={pass.value}", resource, (password,))

        assert resolver.expand(expression) == "Key=s3cret"

    def test_escaped_braces(self, web):
        """Test doubled braces are literal and not re-expanded."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ReferenceExpression, create_value_resolver

        resource, _ = web
        resolver = create_value_resolver(ExecutionContext.run())
        expression = ReferenceExpression('{{"port": {http.port}, "raw": "{{http.port}}"}}', resource)

        assert resolver.expand(expression) == '{"port": 5000, "raw": "{http.port}"}'

    def test_target_port_without_allocation(self, web):
        """Test targetPort is known before allocation."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ReferenceExpression, create_value_resolver

        resource, _ = web
        resolver = create_value_resolver(ExecutionContext.run())

        assert resolver.expand(ReferenceExpression("{admin.targetPort}", resource)) == "9090"

    def test_unallocated_endpoint(self, web):
        """Test run-mode resolution of an unallocated endpoint fails."""
        from appmodel.errors import MissingAllocationError
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ReferenceExpression, create_value_resolver

        resource, _ = web
        resolver = create_value_resolver(ExecutionContext.run())

        with pytest.raises(MissingAllocationError, match="'admin'"):
            resolver.expand(ReferenceExpression("{admin.host}", resource))

    def test_follows_reallocation(self, web):
        """Test resolution reads the current allocation."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import create_value_resolver

        resource, _ = web
        resolver = create_value_resolver(ExecutionContext.run())
        reference = resource.get_endpoint("http")

        assert resolver.resolve(reference) == "http://localhost:5000"
        reference.annotation.allocate("10.0.0.5", 6000)
        assert resolver.resolve(reference) == "http://10.0.0.5:6000"
        assert resolver.resolve(reference.port) == "6000"

    @pytest.mark.parametrize(
        "template,reason",
        [
            ("{missing.port}", "no endpoint named 'missing'"),
            ("{http.bogus}", "unknown field 'bogus'"),
            ("{other.value}", "no parameter named 'other'"),
            ("{noseparator}", "expected '<name>.<field>'"),
            ("Endpoint={http.port", "unbalanced brace"),
            ("Endpoint=http.port}", "unbalanced brace"),
        ],
    )
    def test_unresolved_placeholders(self, web, template, reason):
        """Test every malformed or unknown placeholder fails."""
        from appmodel.errors import UnresolvedPlaceholderError
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ReferenceExpression, create_value_resolver

        resource, password = web
        resolver = create_value_resolver(ExecutionContext.run())

        with pytest.raises(UnresolvedPlaceholderError) as exc_info:
            resolver.expand(ReferenceExpression(template, resource, (password,)))

        assert reason in str(exc_info.value)
        assert exc_info.value.resource_name == "web"

    def test_resolve_scalars(self):
        """Test plain values resolve to strings."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import create_value_resolver

        resolver = create_value_resolver(ExecutionContext.run())

        assert resolver.resolve("text") == "text"
        assert resolver.resolve(42) == "42"
        assert resolver.resolve(True) == "true"
        assert resolver.resolve(None) == ""
        with pytest.raises(TypeError):
            resolver.resolve(3.5)


class TestPublishValueResolver:
    """Test publish-mode resolution."""

    def test_expand_to_placeholders(self, web):
        """Test endpoints and parameters become manifest placeholders."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ReferenceExpression, create_value_resolver

        resource, password = web
        resolver = create_value_resolver(ExecutionContext.publish())
        expression = ReferenceExpression(
            "{admin.url};{http.targetPort};{pass.value}", resource, (password,)
        )

        assert resolver.expand(expression) == (
            "{web.bindings.admin.url};{web.bindings.http.targetPort};{pass.value}"
        )

    def test_never_reads_parameter_values(self):
        """Test publish mode never needs a parameter value."""
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import create_value_resolver
        from appmodel.parameters import ParameterStore

        parameter = ParameterStore({}).declare("missing")
        resolver = create_value_resolver(ExecutionContext.publish())

        assert resolver.resolve(parameter) == "{missing.value}"

    def test_connection_string_reference(self, web):
        """Test the primary connection string is referenced and endpoint ones are expanded."""
        from appmodel.connection_strings import with_connection_string
        from appmodel.execution import ExecutionContext
        from appmodel.expressions import ConnectionStringReference, create_value_resolver

        resource, _ = web
        with_connection_string(resource, "{http.url}")
        with_connection_string(resource, "{admin.url}", endpoint_name="admin")
        resolver = create_value_resolver(ExecutionContext.publish())

        assert resolver.resolve(ConnectionStringReference(resource)) == "{web.connectionString}"
        assert (
            resolver.resolve(ConnectionStringReference(resource, "admin"))
            == "{web.bindings.admin.url}"
        )


class TestReferences:
    """Test deferred references."""

    def test_endpoint_reference_properties(self, web):
        """Test endpoint references expose lazily resolved fields."""
        resource, _ = web
        reference = resource.get_endpoint("http")

        assert reference.exists
        assert reference.is_allocated
        assert reference.host.field == "host"
        assert reference.target_port.field == "targetPort"
        assert not resource.get_endpoint("nope").exists

    def test_unknown_endpoint_property(self, web):
        """Test unknown endpoint fields are rejected."""
        resource, _ = web

        with pytest.raises(ValueError, match="Unknown endpoint property"):
            resource.get_endpoint("http").get_property("path")

    def test_placeholders(self, web):
        """Test placeholders are listed in template order without escapes."""
        from appmodel.expressions import ReferenceExpression

        resource, _ = web
        expression = ReferenceExpression("{{x}} {http.host}:{http.port} {pass.value}", resource)

        assert expression.placeholders() == ["http.host", "http.port", "pass.value"]
