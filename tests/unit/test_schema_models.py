import pytest
from tablekit.exceptions import ConfigurationError
from tablekit.schema import FieldSpec, NameGuide, TargetSchema


class TestNameGuide:

    def test_prefix_separator_plural(self):
        guide = NameGuide(override='', pluralize=True, prefix='app', separator='_')
        assert guide.resolve('user') == 'app_users'

    def test_override_replaces_base(self):
        assert NameGuide(override='accounts').resolve('user') == 'accounts'

    def test_default_is_verbatim(self):
        assert NameGuide().resolve('Account') == 'Account'

    def test_suffix(self):
        assert NameGuide(suffix='v2', separator='_').resolve('Account') == 'Account_v2'

    def test_order_override_plural_prefix_suffix(self):
        guide = NameGuide(prefix='x', suffix='y', separator='.', override='item', pluralize=True)
        assert guide.resolve('ignored') == 'x.items.y'

    def test_prefix_without_separator(self):
        assert NameGuide(prefix='tbl').resolve('User') == 'tblUser'


def _schema(*fields, table='Account'):
    return TargetSchema(table, fields)


class TestTargetSchema:

    def test_fields_stored_as_tuple(self):
        schema = TargetSchema('t', [FieldSpec('id', 'INT')])
        assert isinstance(schema.fields, tuple)
        assert schema.names == ['id']

    def test_field_lookup(self):
        schema = _schema(FieldSpec('id', 'INT'), FieldSpec('name', 'TEXT'))
        assert schema.field('name').sql_type == 'TEXT'
        with pytest.raises(KeyError):
            schema.field('missing')

    def test_rename_map(self):
        schema = _schema(FieldSpec('id', 'INT'),
                         FieldSpec('email', 'TEXT', legacy_name='mail'))
        assert schema.rename_map() == {'mail': 'email'}

    def test_valid_schema(self):
        _schema(FieldSpec('id', 'INT'), FieldSpec('email', 'TEXT', legacy_name='mail')).validate()

    def test_empty_table_name(self):
        with pytest.raises(ConfigurationError, match='Table name'):
            _schema(FieldSpec('id', 'INT'), table='').validate()

    def test_no_fields(self):
        with pytest.raises(ConfigurationError, match='no columns'):
            _schema().validate()

    def test_missing_name_or_type(self):
        with pytest.raises(ConfigurationError, match='needs a name and a SQL type'):
            _schema(FieldSpec('id', '')).validate()
        with pytest.raises(ConfigurationError, match='needs a name and a SQL type'):
            _schema(FieldSpec('', 'INT')).validate()

    def test_duplicate_names(self):
        with pytest.raises(ConfigurationError, match='Duplicate columns'):
            _schema(FieldSpec('id', 'INT'), FieldSpec('id', 'BIGINT')).validate()

    def test_ambiguous_legacy_name(self):
        """Two fields cannot both claim the same old column"""
        with pytest.raises(ConfigurationError, match='Legacy column names'):
            _schema(FieldSpec('a', 'INT', legacy_name='old'),
                    FieldSpec('b', 'INT', legacy_name='old')).validate()

    def test_legacy_name_shadows_column(self):
        """A renamed-from column cannot also stay declared"""
        with pytest.raises(ConfigurationError, match='also declared'):
            _schema(FieldSpec('a', 'INT', legacy_name='b'),
                    FieldSpec('b', 'INT')).validate()


if __name__ == '__main__':
    __import__('pytest').main([__file__])
