"""
Unit tests for the Qdrant resource.
"""

import pytest

QDRANT_PORT_GRPC = 6334
QDRANT_PORT_DASHBOARD = 6333

EXPECTED_BINDINGS = """  "bindings": {
    "http": {
      "scheme": "http",
      "protocol": "tcp",
      "transport": "http",
      "targetPort": 6334
    },
    "rest": {
      "scheme": "http",
      "protocol": "tcp",
      "transport": "http",
      "targetPort": 6333
    }
  }
}"""


class TestAddQdrant:
    """Test the resource metadata declared by add_qdrant."""

    def _assert_endpoint(self, resource, name, target_port):
        from appmodel.model import ProtocolType

        endpoint = resource.try_get_endpoint(name)
        assert endpoint is not None
        assert endpoint.target_port == target_port
        assert endpoint.is_external is False
        assert endpoint.name == name
        assert endpoint.port is None
        assert endpoint.protocol is ProtocolType.TCP
        assert endpoint.transport == "http"
        assert endpoint.uri_scheme == "http"

    def _assert_image(self, resource):
        from appmodel.integrations.qdrant import QdrantContainerImageTags
        from appmodel.model import ContainerImageAnnotation

        images = resource.annotations_of_type(ContainerImageAnnotation)
        assert len(images) == 1
        assert images[0].tag == QdrantContainerImageTags.Tag
        assert images[0].image == QdrantContainerImageTags.Image
        assert images[0].registry is None

    @pytest.mark.asyncio
    async def test_defaults_add_annotation_metadata(self, builder):
        """Test a default Qdrant gets the image, the http endpoint and a generated key."""
        from appmodel.environment import get_environment_variables
        from appmodel.integrations.qdrant import add_qdrant

        add_qdrant(builder, "my-qdrant")
        app = builder.build()

        containers = app.model.get_container_resources()
        assert len(containers) == 1
        resource = containers[0]
        assert resource.name == "my-qdrant"

        self._assert_image(resource)
        self._assert_endpoint(resource, "http", QDRANT_PORT_GRPC)

        config = await get_environment_variables(resource)
        assert list(config) == ["QDRANT__SERVICE__API_KEY"]
        assert config["QDRANT__SERVICE__API_KEY"]

    def test_defaults_add_rest_endpoint(self, builder):
        """Test a default Qdrant declares the rest endpoint."""
        from appmodel.integrations.qdrant import add_qdrant

        add_qdrant(builder, "my-qdrant")
        app = builder.build()

        resource = app.model.get_container_resources()[0]
        self._assert_image(resource)
        self._assert_endpoint(resource, "rest", QDRANT_PORT_DASHBOARD)

    @pytest.mark.asyncio
    async def test_api_key_parameter_is_used(self, builder):
        """Test a supplied API key parameter flows into the environment."""
        from appmodel.environment import get_environment_variables
        from appmodel.integrations.qdrant import add_qdrant

        builder.configuration["Parameters:pass"] = "pass"
        password = builder.add_parameter("pass")
        add_qdrant(builder, "my-qdrant", api_key=password)
        app = builder.build()

        resource = app.model.get_container_resources()[0]
        assert resource.name == "my-qdrant"
        self._assert_image(resource)
        self._assert_endpoint(resource, "http", QDRANT_PORT_GRPC)

        config = await get_environment_variables(resource)
        assert config == {"QDRANT__SERVICE__API_KEY": "pass"}

    def test_generated_api_key_parameter(self, builder):
        """Test the generated key is a secret parameter without special characters."""
        from appmodel.integrations.qdrant import add_qdrant

        qdrant = add_qdrant(builder, "qdrant")

        parameter = qdrant.resource.api_key_parameter
        assert parameter.name == "qdrant-Key"
        assert parameter.secret is True
        assert parameter.default.min_length == 22
        assert parameter.default.special is False
        assert builder.model["qdrant-Key"] is parameter

    def test_generated_api_key_is_stable(self, builder):
        """Test the generated key does not change between reads."""
        from appmodel.integrations.qdrant import add_qdrant

        qdrant = add_qdrant(builder, "qdrant")
        parameter = qdrant.resource.api_key_parameter

        first = parameter.get_value()
        assert len(first) >= 22
        assert parameter.get_value() == first

    def test_ports_map_to_endpoints(self, builder):
        """Test grpc_port configures http and http_port configures rest."""
        from appmodel.integrations.qdrant import add_qdrant

        qdrant = add_qdrant(builder, "qdrant", http_port=16333, grpc_port=16334)

        assert qdrant.resource.try_get_endpoint("http").port == 16334
        assert qdrant.resource.try_get_endpoint("rest").port == 16333
        assert qdrant.resource.primary_endpoint.endpoint_name == "http"
        assert qdrant.resource.rest_endpoint.endpoint_name == "rest"

    def test_api_key_must_be_parameter(self, builder):
        """Test a non-parameter API key is rejected."""
        from appmodel.integrations.qdrant import add_qdrant

        cache = builder.add_container("cache", "redis")

        with pytest.raises(TypeError):
            add_qdrant(builder, "qdrant", api_key=cache)


class TestQdrantConnectionStrings:
    """Test run-mode connection strings of a Qdrant resource."""

    @pytest.mark.asyncio
    async def test_creates_connection_string(self, builder):
        """Test the primary connection string uses the allocated http endpoint."""
        from appmodel.connection_strings import get_connection_string
        from appmodel.integrations.qdrant import add_qdrant

        builder.configuration["Parameters:pass"] = "pass"
        password = builder.add_parameter("pass")

        qdrant = add_qdrant(builder, "my-qdrant", password).with_endpoint(
            "http", lambda e: e.allocate("localhost", 6334)
        )

        connection_string = await get_connection_string(qdrant.resource)
        assert connection_string == "Endpoint=http://localhost:6334;Key=pass"

    @pytest.mark.asyncio
    async def test_rest_connection_string(self, builder):
        """Test the rest connection string uses the allocated rest endpoint."""
        from appmodel.connection_strings import get_connection_string
        from appmodel.integrations.qdrant import add_qdrant

        builder.configuration["Parameters:pass"] = "pass"
        password = builder.add_parameter("pass")

        qdrant = add_qdrant(builder, "my-qdrant", password).with_endpoint(
            "rest", lambda e: e.allocate("localhost", 6333)
        )

        connection_string = await get_connection_string(qdrant.resource, endpoint_name="rest")
        assert connection_string == "Endpoint=http://localhost:6333;Key=pass"

    @pytest.mark.asyncio
    async def test_connection_string_requires_allocation(self, builder):
        """Test run-mode resolution fails before the endpoint is allocated."""
        from appmodel.connection_strings import get_connection_string
        from appmodel.errors import MissingAllocationError
        from appmodel.integrations.qdrant import add_qdrant

        builder.configuration["Parameters:pass"] = "pass"
        qdrant = add_qdrant(builder, "my-qdrant", builder.add_parameter("pass"))

        with pytest.raises(MissingAllocationError) as exc_info:
            await get_connection_string(qdrant.resource)

        assert exc_info.value.endpoint_name == "http"
        assert exc_info.value.resource_name == "my-qdrant"

    @pytest.mark.asyncio
    async def test_client_with_reference_contains_connection_strings(self, builder):
        """Test a reference injects the primary and the rest connection strings."""
        from appmodel.environment import get_environment_variables
        from appmodel.integrations.qdrant import add_qdrant

        builder.configuration["Parameters:pass"] = "pass"
        password = builder.add_parameter("pass")

        qdrant = (
            add_qdrant(builder, "my-qdrant", password)
            .with_endpoint("http", lambda e: e.allocate("localhost", 6334))
            .with_endpoint("rest", lambda e: e.allocate("localhost", 6333))
        )

        project = builder.add_project("projecta", "projectA").with_reference(qdrant)

        config = await get_environment_variables(project.resource)

        keys = [k for k in config if k.startswith("ConnectionStrings__")]
        assert len(keys) == 2
        assert config["ConnectionStrings__my-qdrant"] == "Endpoint=http://localhost:6334;Key=pass"
        assert config["ConnectionStrings__my-qdrant_rest"] == "Endpoint=http://localhost:6333;Key=pass"

    @pytest.mark.asyncio
    async def test_named_reference_injects_rest_only(self, builder):
        """Test a reference to the rest endpoint injects only its connection string."""
        from appmodel.environment import get_environment_variables
        from appmodel.integrations.qdrant import add_qdrant

        builder.configuration["Parameters:pass"] = "pass"
        qdrant = add_qdrant(builder, "my-qdrant", builder.add_parameter("pass")).with_endpoint(
            "rest", lambda e: e.allocate("localhost", 6333)
        )

        project = builder.add_project("projecta", "projectA").with_reference(qdrant, "rest")

        config = await get_environment_variables(project.resource)
        assert config == {"ConnectionStrings__my-qdrant_rest": "Endpoint=http://localhost:6333;Key=pass"}


class TestQdrantManifest:
    """Test the published manifest of a Qdrant resource."""

    @pytest.mark.asyncio
    async def test_verify_manifest(self, publish_builder):
        """Test the manifest text of a Qdrant with a generated key."""
        from appmodel.integrations.qdrant import QdrantContainerImageTags, add_qdrant
        from appmodel.publishing import get_manifest_text

        qdrant = add_qdrant(publish_builder, "qdrant")

        manifest = await get_manifest_text(qdrant.resource)

        expected = (
            "{\n"
            '  "type": "container.v0",\n'
            '  "connectionString": "Endpoint={qdrant.bindings.http.scheme}://'
            '{qdrant.bindings.http.host}:{qdrant.bindings.http.port};Key={qdrant-Key.value}",\n'
            f'  "image": "{QdrantContainerImageTags.Image}:{QdrantContainerImageTags.Tag}",\n'
            '  "env": {\n'
            '    "QDRANT__SERVICE__API_KEY": "{qdrant-Key.value}",\n'
            '    "QDRANT__SERVICE__ENABLE_STATIC_CONTENT": "0"\n'
            "  },\n"
        ) + EXPECTED_BINDINGS
        assert manifest == expected

    @pytest.mark.asyncio
    async def test_verify_manifest_with_parameters(self, publish_builder):
        """Test the manifest text of a Qdrant with a supplied key parameter."""
        from appmodel.integrations.qdrant import QdrantContainerImageTags, add_qdrant
        from appmodel.publishing import get_manifest_text

        api_key = publish_builder.add_parameter("QdrantApiKey")
        qdrant = add_qdrant(publish_builder, "qdrant", api_key)

        manifest = await get_manifest_text(qdrant.resource)

        expected = (
            "{\n"
            '  "type": "container.v0",\n'
            '  "connectionString": "Endpoint={qdrant.bindings.http.scheme}://'
            '{qdrant.bindings.http.host}:{qdrant.bindings.http.port};Key={QdrantApiKey.value}",\n'
            f'  "image": "{QdrantContainerImageTags.Image}:{QdrantContainerImageTags.Tag}",\n'
            '  "env": {\n'
            '    "QDRANT__SERVICE__API_KEY": "{QdrantApiKey.value}",\n'
            '    "QDRANT__SERVICE__ENABLE_STATIC_CONTENT": "0"\n'
            "  },\n"
        ) + EXPECTED_BINDINGS
        assert manifest == expected

    @pytest.mark.asyncio
    async def test_static_content_only_in_publish_mode(self, builder):
        """Test run-mode evaluation leaves static content enabled."""
        from appmodel.environment import get_environment_variables
        from appmodel.execution import ExecutionContext
        from appmodel.integrations.qdrant import add_qdrant

        qdrant = add_qdrant(builder, "qdrant")

        run_env = await get_environment_variables(qdrant.resource, ExecutionContext.run())
        publish_env = await get_environment_variables(qdrant.resource, ExecutionContext.publish())

        assert "QDRANT__SERVICE__ENABLE_STATIC_CONTENT" not in run_env
        assert publish_env["QDRANT__SERVICE__ENABLE_STATIC_CONTENT"] == "0"

    @pytest.mark.asyncio
    async def test_data_volume_and_bind_mount(self, publish_builder):
        """Test data persistence options render as volumes and bind mounts."""
        from appmodel.integrations.qdrant import add_qdrant, with_data_bind_mount, with_data_volume
        from appmodel.publishing import get_manifest

        qdrant = add_qdrant(publish_builder, "qdrant")
        with_data_volume(qdrant)
        with_data_bind_mount(qdrant, "./data", read_only=True)

        manifest = await get_manifest(qdrant.resource)

        assert manifest["volumes"] == [
            {"name": "qdrant-data", "target": "/qdrant/storage", "readOnly": False}
        ]
        assert manifest["bindMounts"] == [
            {"source": "./data", "target": "/qdrant/storage", "readOnly": True}
        ]
        assert list(manifest) == [
            "type",
            "connectionString",
            "image",
            "volumes",
            "bindMounts",
            "env",
            "bindings",
        ]
